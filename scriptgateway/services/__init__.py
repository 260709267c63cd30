# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Services Package.
Exposes the gateway services:
- Static validation and parameter sanitisation
- Resource limit resolution
- Execution dispatch and subscription routing
- Script catalog lookups, notifications and logging
"""
