"""Command-line interface for central-publisher.

Every command builds one portal client from settings, runs one
orchestrator workflow and exits non-zero on any classified failure.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Callable, Sequence

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from central_publisher import __version__
from central_publisher.config import Settings, build_portal_config, get_settings
from central_publisher.core.exceptions import (
    DeploymentLifecycleError,
    PublisherError,
    ValidationError,
)
from central_publisher.core.lifecycle import CancellationToken
from central_publisher.core.orchestrator import ReleaseOrchestrator
from central_publisher.models.deployment import Coordinates, DeploymentStatus
from central_publisher.models.release import (
    CleanReport,
    CleanRequest,
    DeploymentReport,
    PublishReport,
    PublishRequest,
    ReleaseRequest,
    UploadRequest,
)
from central_publisher.services.portal_client import CentralPortalClient
from central_publisher.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[Settings], CentralPortalClient]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="central-publisher",
        description="Upload, publish and clean Central Portal deployments",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    upload_parser = subparsers.add_parser("upload", help="Upload a bundle and wait for it")
    upload_parser.add_argument("artifact_file", type=Path, help="Bundle zip to upload")
    upload_parser.add_argument("--bundle-name", help="Defaults to the file name without extension")
    upload_parser.add_argument(
        "--mode",
        dest="publish_mode",
        help="USER_MANAGED (stop at VALIDATED) or AUTOMATIC",
    )
    upload_parser.add_argument("--max-wait-validation", type=float, help="Seconds")
    upload_parser.add_argument("--max-wait-publishing", type=float, help="Seconds")
    upload_parser.add_argument("--poll-interval", type=float, help="Seconds")
    upload_parser.add_argument(
        "--no-wait-for-completion",
        dest="wait_for_completion",
        action="store_false",
        default=None,
        help="Return as soon as publishing has started",
    )

    status_parser = subparsers.add_parser("status", help="Show one deployment's status")
    status_parser.add_argument("deployment_id")

    list_parser = subparsers.add_parser("list", help="List deployments of a namespace")
    list_parser.add_argument("--namespace", "-n")
    list_parser.add_argument("--all", dest="show_all", action="store_true", help="Show every deployment")

    for command, help_text in (
        ("publish", "Publish a VALIDATED deployment (PUBLISHING is a no-op)"),
        ("release", "Release the latest deployment that is exactly VALIDATED"),
    ):
        target_parser = subparsers.add_parser(command, help=help_text)
        target_parser.add_argument("--deployment-id", "-d")
        target_parser.add_argument("--namespace", "-n")
        target_parser.add_argument("--name")
        target_parser.add_argument("--version", dest="artifact_version")
        target_parser.add_argument("--dry-run", action="store_true")

    clean_parser = subparsers.add_parser("clean", help="Drop deployments")
    clean_parser.add_argument("--deployment-id", "-d")
    clean_parser.add_argument("--namespace", "-n")
    clean_parser.add_argument("--all", dest="remove_all", action="store_true", help="Consider every deployment")
    clean_parser.add_argument(
        "--include-non-failed",
        dest="remove_failed_only",
        action="store_false",
        help="Also drop deployments that are not FAILED",
    )
    clean_parser.add_argument("--dry-run", action="store_true")

    published_parser = subparsers.add_parser("published", help="Check whether a GAV is published")
    published_parser.add_argument("--namespace", "-n")
    published_parser.add_argument("--name", required=True)
    published_parser.add_argument("--version", dest="artifact_version", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host")
    serve_parser.add_argument("--port", type=int)

    return parser


def upload_request(args: argparse.Namespace) -> UploadRequest:
    return UploadRequest(
        artifact_file=args.artifact_file,
        bundle_name=args.bundle_name,
        publish_mode=args.publish_mode,
        max_wait_validation=args.max_wait_validation,
        max_wait_publishing=args.max_wait_publishing,
        poll_interval=args.poll_interval,
        wait_for_completion=args.wait_for_completion,
    )


def target_request(args: argparse.Namespace, settings: Settings) -> PublishRequest:
    request_class = ReleaseRequest if args.command == "release" else PublishRequest
    return request_class(
        deployment_id=args.deployment_id,
        namespace=args.namespace or settings.central_namespace,
        name=args.name,
        version=args.artifact_version,
        dry_run=args.dry_run,
    )


def clean_request(args: argparse.Namespace, settings: Settings) -> CleanRequest:
    return CleanRequest(
        deployment_id=args.deployment_id,
        namespace=args.namespace or settings.central_namespace,
        remove_all=args.remove_all,
        remove_failed_only=args.remove_failed_only,
        dry_run=args.dry_run,
    )


def render(result: BaseModel | list[DeploymentStatus]) -> str:
    """Short human summary of a command result."""
    if isinstance(result, DeploymentReport):
        lines = [
            f"Deployment {result.deployment_id}: {result.state} ({result.outcome.value})",
            f"  {result.message}",
            f"  polls: {result.polls}, elapsed: {result.elapsed_seconds:.1f}s",
        ]
        lines.extend(f"  component: {purl}" for purl in result.components)
        return "\n".join(lines)
    if isinstance(result, PublishReport):
        prefix = "[DRY RUN] " if result.dry_run else ""
        return f"{prefix}Deployment {result.deployment_id} ({result.state}): {result.action.value}"
    if isinstance(result, CleanReport):
        prefix = "[DRY RUN] " if result.dry_run else ""
        if not result.entries:
            return f"{prefix}No deployments found to drop."
        return "\n".join(
            f"{prefix}{entry.action.value}: {entry.deployment_id} (state: {entry.state or 'unknown'})"
            for entry in result.entries
        )
    if isinstance(result, list):
        if not result:
            return "No deployments found."
        return "\n".join(_render_status(status) for status in result)
    if isinstance(result, DeploymentStatus):
        return _render_status(result)
    return result.model_dump_json(indent=2)


def _render_status(status: DeploymentStatus) -> str:
    lines = [f"DeploymentId: {status.deployment_id}, State: {status.deployment_state}"]
    lines.extend(f"  Component: {purl}" for purl in status.component_purls)
    return "\n".join(lines)


def report_failure(error: PublisherError) -> str:
    """Failure block: selected id, last known state, then the message."""
    lines = []
    if isinstance(error, DeploymentLifecycleError):
        if error.deployment_id:
            lines.append(f"Deployment: {error.deployment_id}")
        lines.append(f"Last state: {error.state or 'unknown'}")
    lines.append(f"Error: {error.message}")
    return "\n".join(lines)


def _default_client_factory(settings: Settings) -> CentralPortalClient:
    return CentralPortalClient(build_portal_config(settings))


async def run(
    args: argparse.Namespace,
    settings: Settings | None = None,
    client_factory: ClientFactory = _default_client_factory,
    orchestrator_factory: Callable[..., ReleaseOrchestrator] = ReleaseOrchestrator,
) -> int:
    """Execute one parsed command. Returns the process exit code."""
    settings = settings or get_settings()
    try:
        async with client_factory(settings) as client:
            orchestrator = orchestrator_factory(client, settings)
            result = await _dispatch(args, orchestrator, settings)
    except PublisherError as e:
        logger.error("cli.command_failed", command=args.command, error=type(e).__name__)
        print(report_failure(e), file=sys.stderr)
        return 1
    except ModelValidationError as e:
        print(f"Error: invalid arguments: {e.errors()[0]['msg']}", file=sys.stderr)
        return 2

    print(render(result))
    return 0


async def _dispatch(args: argparse.Namespace, orchestrator: ReleaseOrchestrator, settings: Settings):
    if args.command == "upload":
        cancel = CancellationToken()
        _install_interrupt_handler(cancel)
        return await orchestrator.upload(upload_request(args), cancel=cancel)
    if args.command == "status":
        return await orchestrator.status(args.deployment_id)
    if args.command == "list":
        namespace = args.namespace or settings.central_namespace
        if not namespace:
            raise ValidationError("A namespace is required (--namespace or CENTRAL_NAMESPACE)")
        return await orchestrator.list_deployments(namespace, args.show_all)
    if args.command == "publish":
        return await orchestrator.publish_now(target_request(args, settings))
    if args.command == "release":
        return await orchestrator.release_latest_validated(target_request(args, settings))
    if args.command == "clean":
        return await orchestrator.clean(clean_request(args, settings))
    if args.command == "published":
        coordinates = Coordinates(
            namespace=args.namespace or settings.central_namespace or "",
            name=args.name,
            version=args.artifact_version,
        )
        return await orchestrator.check_published(coordinates)
    raise ValueError(f"Unknown command: {args.command}")


def _install_interrupt_handler(cancel: CancellationToken) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel, "interrupted by user")
    except (NotImplementedError, RuntimeError):
        # Platforms without signal support in the event loop
        logger.debug("cli.no_signal_handler")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        level = "DEBUG"
    elif args.verbose:
        level = "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level, log_format="json" if args.json_logs else None)

    if args.command == "serve":
        from central_publisher.main import serve

        serve(args.host, args.port)
        return 0

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
