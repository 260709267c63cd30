# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/cache/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Cache Package.
Holds in-memory admission state for the gateway:
- Per-script, per-class request windows
"""
