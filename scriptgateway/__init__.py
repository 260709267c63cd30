# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Script Execution Gateway.
Vets user-authored scripts, applies admission control and resource
ceilings, dispatches runs to a remote sandboxed backend and streams the
resulting events back to per-script listeners.
"""

__version__ = "0.1.0"
