# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""HTTP server for certificate issuance and the DID API."""

from .app import create_app, run
from .services import Services, build_services

__all__ = ["Services", "build_services", "create_app", "run"]
