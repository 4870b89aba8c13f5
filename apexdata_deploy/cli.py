import sys
from pathlib import Path
from typing import Callable

import click

from . import console, kubernetes, systemd
from .config import (
    DEFAULT_MANIFEST,
    ENV_CLUSTER_NAME,
    ENV_CREDENTIALS,
    ENV_OTEL_ENDPOINT,
    EXAMPLE_CLUSTER_NAME,
    EXAMPLE_OTEL_ENDPOINT,
    K8sDeployConfig,
    MissingEnvironmentError,
    ServicePaths,
    load_env_files,
)
from .logging_utils import setup_logging, get_logger


logger = get_logger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

K8S_CLI = "apexdata-k8s"

_EXPORT_EXAMPLES = (
    f'  export {ENV_OTEL_ENDPOINT}="{EXAMPLE_OTEL_ENDPOINT}"\n'
    f"  export {ENV_CREDENTIALS}=\"$(echo -n 'user:pass' | base64)\"\n"
    f'  export {ENV_CLUSTER_NAME}="{EXAMPLE_CLUSTER_NAME}"'
)

_K8S_EPILOG = f"""\b
Environment variables:
  {ENV_OTEL_ENDPOINT}        - OpenTelemetry endpoint (without port)
  {ENV_CREDENTIALS}   - Base64 credentials
  {ENV_CLUSTER_NAME}         - Cluster name

\b
Examples:
  # Interactive deployment
  {K8S_CLI} --interactive

\b
  # Deployment with environment variables
{_EXPORT_EXAMPLES}
  {K8S_CLI}

\b
  # Check status
  {K8S_CLI} --status
"""


def _fail(e: Exception) -> None:
    logger.debug("명령 실패", exc_info=True)
    console.error(str(e))
    sys.exit(1)


def _missing_env_hint() -> str:
    return (
        "\n"
        "Set them or run script in interactive mode:\n"
        f"  {K8S_CLI} --interactive\n"
        "\n"
        "Or set the variables:\n"
        f"{_EXPORT_EXAMPLES}"
    )


@click.command(context_settings=CONTEXT_SETTINGS, epilog=_K8S_EPILOG)
@click.option("-i", "--interactive", is_flag=True, help="Interactive parameter setup")
@click.option("-s", "--status", "show_status", is_flag=True, help="Show deployment status")
@click.option("-u", "--uninstall", is_flag=True, help="Remove deployment")
@click.option(
    "-f",
    "--manifest",
    default=DEFAULT_MANIFEST,
    show_default=True,
    help="Manifest file, relative to the working directory",
)
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation when removing")
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="Working directory (default: current directory)",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-vv for executed commands)")
def k8s_main(
    interactive: bool,
    show_status: bool,
    uninstall: bool,
    manifest: str,
    yes: bool,
    chdir: str,
    verbose: int,
) -> None:
    """ApexData Universal Deployment Script

    Deploys the ApexData Agent and OpenTelemetry Collector to the current
    Kubernetes cluster.
    """
    setup_logging(verbose)

    if sum((interactive, show_status, uninstall)) > 1:
        raise click.UsageError("--interactive, --status and --uninstall are mutually exclusive")

    loaded = load_env_files(chdir)
    if loaded:
        logger.info("환경 파일 로드: %s", loaded)

    manifest_path = Path(chdir) / manifest

    try:
        if show_status:
            kubernetes.status()
        elif uninstall:
            _k8s_uninstall(manifest_path, yes)
        else:
            kubernetes.check_dependencies()
            if interactive:
                cfg = kubernetes.interactive_setup()
            else:
                cfg = K8sDeployConfig.from_env()
            kubernetes.deploy(cfg, manifest_path)
    except MissingEnvironmentError as e:
        console.error(str(e))
        click.echo(_missing_env_hint(), err=True)
        sys.exit(1)
    except (click.Abort, click.ClickException):
        raise
    except Exception as e:  # noqa: BLE001
        _fail(e)


def _k8s_uninstall(manifest_path: Path, yes: bool) -> None:
    console.warn("Removing ApexData Agent...")
    if not yes and not click.confirm("Are you sure?", default=False):
        console.info("Removal cancelled")
        return
    kubernetes.uninstall(manifest_path)


# -----------------------------
# host service manager
# -----------------------------


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="Directory holding the apexdata-agent binary (default: current directory)",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-vv for executed commands)")
@click.pass_context
def service_main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """ApexData Agent Service Manager

    Manages the apexdata-agent systemd service. Most commands need root.
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj.setdefault("paths", ServicePaths())


def _run(ctx: click.Context, action: Callable[[ServicePaths], object], *, root: bool = False) -> None:
    try:
        if root:
            systemd.check_root()
        action(ctx.obj["paths"])
    except (click.Abort, click.ClickException):
        raise
    except Exception as e:  # noqa: BLE001
        _fail(e)


@service_main.command()
@click.pass_context
def install(ctx: click.Context) -> None:
    """Install and configure the service"""
    _run(ctx, lambda paths: systemd.install_service(paths, source_dir=ctx.obj["chdir"]), root=True)


@service_main.command()
@click.pass_context
def uninstall(ctx: click.Context) -> None:
    """Remove the service completely"""
    _run(ctx, systemd.uninstall_service, root=True)


@service_main.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Start the service"""
    _run(ctx, systemd.start_service, root=True)


@service_main.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop the service"""
    _run(ctx, systemd.stop_service, root=True)


@service_main.command()
@click.pass_context
def restart(ctx: click.Context) -> None:
    """Restart the service"""
    _run(ctx, systemd.restart_service, root=True)


@service_main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show service status"""
    _run(ctx, systemd.show_status)


@service_main.command()
@click.option("-n", "--lines", type=click.IntRange(min=1), default=50, show_default=True, help="Number of lines to show")
@click.option("-f", "--follow", is_flag=True, help="Keep following new log lines")
@click.pass_context
def logs(ctx: click.Context, lines: int, follow: bool) -> None:
    """Show service logs"""
    _run(ctx, lambda paths: systemd.show_logs(paths, lines=lines, follow=follow))


@service_main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration"""
    _run(ctx, systemd.show_config)


@service_main.command()
@click.pass_context
def update(ctx: click.Context) -> None:
    """Update service configuration"""
    _run(ctx, systemd.update_config, root=True)


@service_main.command(name="help")
@click.pass_context
def help_(ctx: click.Context) -> None:
    """Show this help message"""
    click.echo(ctx.find_root().get_help())
