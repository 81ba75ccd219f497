# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resource Liveness CLI."""

from resource_liveness.cli.commands import cli

__all__: list[str] = ["cli"]
