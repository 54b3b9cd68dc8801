# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


import asyncio
import itertools
from typing import Dict, Optional

import aiohttp
import msgspec
from loguru import logger

from sparkscan_ws.config import SparkScanWsConfig
from sparkscan_ws.errors import ConfigError, NotConnectedError, SparkScanConnectionError
from sparkscan_ws.transport.centrifugo.model import (
    Command,
    ConnectRequest,
    Disconnect,
    Publication,
    PublishRequest,
    Push,
    Reply,
    SubscribeRequest,
    UnsubscribeRequest,
)
from sparkscan_ws.transport.centrifugo.reply_errors import ReplyErrorEnum
from sparkscan_ws.transport.transport import BaseTransport
from sparkscan_ws.utils.constants import CLIENT_NAME, USER_AGENT, VERSION

PING_FRAME = "{}"


class CentrifugoTransport(BaseTransport):
    """Centrifugo JSON protocol transport over an aiohttp WebSocket."""

    def __init__(self, config: Optional[SparkScanWsConfig] = None, token: str = ""):
        """Initializes the Centrifugo transport."""
        super().__init__(config)
        self.url = self.config.url
        self.token = token
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self.encoder = msgspec.json.Encoder()
        self.reply_decoder = msgspec.json.Decoder(Reply)
        self.client_id: Optional[str] = None
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._reader: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._server_disconnect: Optional[Disconnect] = None
        self._send_pong = False
        self._closing = False

    async def connect(self) -> None:
        """Opens the WebSocket and performs the Centrifugo connect handshake."""
        if self.config.use_protobuf:
            raise ConfigError("Protobuf protocol is not supported, set use_protobuf=False")
        if self._connected:
            return
        if self.session is not None:
            # Leftovers of a connection that was lost
            await self._shutdown()

        self._closing = False
        self._send_pong = False
        self._server_disconnect = None
        self._ids = itertools.count(1)
        self.session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        try:
            self.ws = await asyncio.wait_for(
                self.session.ws_connect(self.url, autoping=True),
                timeout=self.config.connection_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self._close_session()
            raise SparkScanConnectionError(f"Failed to open WebSocket to {self.url}: {e!r}") from e

        self._reader = asyncio.create_task(self._read_loop())

        try:
            reply = await self._send_command(
                Command(
                    id=next(self._ids),
                    connect=ConnectRequest(name=CLIENT_NAME, version=VERSION, token=self.token),
                )
            )
        except BaseException:
            await self._shutdown()
            raise

        if reply.connect is not None:
            self.client_id = reply.connect.client
        self._connected = True
        logger.success(f"Connected to Centrifugo at {self.url} (client {self.client_id})")

    async def disconnect(self) -> None:
        """Closes the WebSocket without reporting a disconnect to the client."""
        self._closing = True
        await self._shutdown()
        logger.info(f"Disconnected from {self.url}")

    async def subscribe(self, channel: str) -> None:
        await self._send_command(Command(id=next(self._ids), subscribe=SubscribeRequest(channel=channel)))
        logger.info(f"Subscribed to {channel}")

    async def unsubscribe(self, channel: str) -> None:
        await self._send_command(Command(id=next(self._ids), unsubscribe=UnsubscribeRequest(channel=channel)))
        logger.info(f"Unsubscribed from {channel}")

    async def publish(self, channel: str, data: bytes) -> None:
        """Publishes JSON encoded ``data`` to ``channel``."""
        try:
            msgspec.json.decode(data)
        except msgspec.DecodeError as e:
            raise ValueError(f"Publication data must be JSON: {e}") from e
        await self._send_command(
            Command(id=next(self._ids), publish=PublishRequest(channel=channel, data=msgspec.Raw(data)))
        )

    async def health_check(self) -> bool:
        return self.is_connected and self.ws is not None and not self.ws.closed

    async def _send_command(self, command: Command) -> Reply:
        """Sends a command and waits for the reply with the same id."""
        if self.ws is None or self.ws.closed:
            raise NotConnectedError()

        future = asyncio.get_running_loop().create_future()
        self._pending[command.id] = future
        try:
            await self.ws.send_str(self.encoder.encode(command).decode())
            reply: Reply = await asyncio.wait_for(future, timeout=self.config.connection_timeout)
        except asyncio.TimeoutError as e:
            raise SparkScanConnectionError(f"Timed out waiting for reply to command {command.id}") from e
        except ConnectionResetError as e:
            raise SparkScanConnectionError(f"Connection lost while sending command {command.id}") from e
        finally:
            self._pending.pop(command.id, None)

        if reply.is_error:
            raise ReplyErrorEnum.to_exception(reply.error, context=f"command {command.id}")
        return reply

    async def _read_loop(self) -> None:
        ws = self.ws
        reason: Optional[str] = None
        try:
            async for message in ws:
                if message.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    await self._handle_frame(message.data)
                elif message.type == aiohttp.WSMsgType.ERROR:
                    reason = repr(ws.exception())
                    break
            if reason is None and self._server_disconnect is not None:
                reason = self._server_disconnect.reason or f"server disconnect {self._server_disconnect.code}"
            if reason is None and ws.close_code is not None:
                reason = f"closed with code {ws.close_code}"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = repr(e)
            logger.error(f"WebSocket read loop failed: {e}")
        finally:
            self._fail_pending(SparkScanConnectionError(f"Connection closed: {reason}"))
            was_connected = self._connected
            self._connected = False
            if was_connected and not self._closing:
                logger.warning(f"Connection to {self.url} lost: {reason}")
                reconnect = self._server_disconnect is None or self._server_disconnect.reconnect
                self._emit_disconnect(reason, reconnect)

    async def _handle_frame(self, data: str | bytes) -> None:
        """Handles a frame, which may hold several newline-delimited replies."""
        if isinstance(data, str):
            data = data.encode()

        for line in data.splitlines():
            if not line.strip():
                continue
            try:
                reply = self.reply_decoder.decode(line)
            except msgspec.DecodeError as e:
                logger.error(f"Dropping malformed frame: {e}")
                continue

            if reply.is_ping:
                if self._send_pong and self.ws is not None and not self.ws.closed:
                    await self.ws.send_str(PING_FRAME)
                continue

            if reply.connect is not None:
                # Pings may follow the connect reply in the same frame.
                self._send_pong = reply.connect.pong

            if reply.id:
                future = self._pending.get(reply.id)
                if future is not None and not future.done():
                    future.set_result(reply)
                else:
                    logger.debug(f"Reply for unknown command {reply.id}")
                continue

            if reply.push is not None:
                self._handle_push(reply.push)

    def _handle_push(self, push: Push) -> None:
        if push.pub is not None:
            self._dispatch_publication(push.channel, push.pub)
        elif push.unsubscribe is not None:
            logger.info(f"Server unsubscribed {push.channel}: {push.unsubscribe.reason}")
            self._emit_unsubscribe(push.channel)
        elif push.disconnect is not None:
            logger.warning(f"Server disconnect: {push.disconnect.reason} (code {push.disconnect.code})")
            self._server_disconnect = push.disconnect
            if self.ws is not None and self._close_task is None:
                self._close_task = asyncio.create_task(self.ws.close())

    def _dispatch_publication(self, channel: str, publication: Publication) -> None:
        try:
            self._emit_publication(channel, bytes(publication.data))
        except Exception as e:
            logger.exception(f"Publication handler failed for {channel}: {e}")

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _shutdown(self) -> None:
        self._connected = False
        if self._close_task is not None:
            await self._close_task
            self._close_task = None
        if self.ws is not None:
            await self.ws.close()
            self.ws = None
        if self._reader is not None:
            if not self._reader.done():
                self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        await self._close_session()

    async def _close_session(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
