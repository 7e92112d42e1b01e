"""The ``kubestream`` command.

Every option falls back to its ``KUBESTREAM_*`` environment variable, and
then to the built-in default (see ``kubestream.config``).
"""

from __future__ import annotations

import asyncio
from typing import Any

import click

from kubestream import __version__
from kubestream.app import main
from kubestream.config import load_config, parse_duration, parse_namespaces
from kubestream.models.config import KubeStreamConfig


class _Duration(click.ParamType):
    """Click parameter accepting ``500ms``, ``2s``, ``1m`` or bare seconds."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(str(value))
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


DURATION = _Duration()


def build_config(
    kubeconfig: str | None,
    namespaces: str | None,
    stream_delay: float | None,
    report_interval: float | None,
    log_level: str | None,
    log_format: str | None,
) -> KubeStreamConfig:
    """Environment configuration with the explicitly given options applied on top."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if kubeconfig is not None:
        config.kube.kubeconfig = kubeconfig
    if namespaces is not None:
        config.kube.namespaces = parse_namespaces(namespaces)
    if stream_delay is not None:
        config.stream.start_delay = stream_delay
    if report_interval is not None:
        config.stream.report_interval = report_interval
    if log_level is not None:
        config.log.level = log_level.lower()
    if log_format is not None:
        config.log.format = log_format.lower()
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--kubeconfig",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the kubeconfig file (default: $KUBECONFIG or ~/.kube/config).",
)
@click.option(
    "--namespaces",
    "-n",
    default=None,
    help="Comma-separated namespaces to watch. Empty means every namespace.",
)
@click.option(
    "--stream-delay",
    type=DURATION,
    default=None,
    help="Delay before opening a new container's log stream (default: 500ms).",
)
@click.option(
    "--report-interval",
    type=DURATION,
    default=None,
    help="How often to log the active stream count; 0 disables (default: 30s).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Diagnostic log level (default: info).",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"], case_sensitive=False),
    default=None,
    help="Diagnostic log format on stderr (default: json).",
)
@click.version_option(__version__, prog_name="kubestream")
def cli(
    kubeconfig: str | None,
    namespaces: str | None,
    stream_delay: float | None,
    report_interval: float | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Tail the logs of every ready pod's containers across namespaces.

    Lines are written to stdout as ``[namespace/pod/container:kind] <line>``.
    Diagnostics go to stderr.  Stop with Ctrl-C.
    """
    config = build_config(kubeconfig, namespaces, stream_delay, report_interval, log_level, log_format)
    asyncio.run(main(config))
