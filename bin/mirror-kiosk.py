#!/usr/bin/env python3
"""Smart mirror kiosk daemon."""

from __future__ import annotations

from mirror.kiosk import cli

if __name__ == "__main__":
    cli()
