# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/utils/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Utility helpers shared across the gateway.
"""
