# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/transports/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Transports Package.
Connection to the execution backend and the local simulator used when the
backend cannot be reached.
"""
