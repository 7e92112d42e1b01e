"""Entry point for `python -m kubestream`.

Usage:
    python -m kubestream --namespaces default,kube-system
    uv run python -m kubestream
"""

from __future__ import annotations

from kubestream.cli import cli

cli()
