# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

__version__ = "0.1.0"

VIRTINK_VERSION = "v0.13.0"
VIRTINK_PROVIDER_VERSION = "v0.6.0"
IP_ADDRESS_MANAGER_VERSION = "v1.2.1"
CDI_VERSION = "v1.55.2"
