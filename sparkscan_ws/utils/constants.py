# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Package-wide constants"""

VERSION = "0.1.0"

DEFAULT_MAINNET_URL = "ws://updates.sparkscan.io/"

CLIENT_NAME = "sparkscan-ws-py"

USER_AGENT = f"{CLIENT_NAME}/{VERSION}"
