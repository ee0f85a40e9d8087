"""
POM resolver entry point.

``pomresolver serve`` runs the HTTP API; ``pomresolver resolve g:a:v`` prints
the effective dependency set of one artifact.
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from .api.main import create_app
from .config.settings import get_settings
from .core.exceptions import PomResolverError
from .core.logging_config import setup_logging
from .processing.maven_model import Coordinate
from .services.artifact_registry import ArtifactRegistry


def _print_artifact(registry: ArtifactRegistry, coordinate: Coordinate) -> int:
    try:
        version = registry.resolve(coordinate)
    except PomResolverError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1

    print(f"{version.path}  {version.name or ''}".rstrip())
    if version.parent is not None:
        print(f"  parent: {version.parent.path}")
    for lic in version.licenses:
        print(f"  license: {lic.name or '?'} {lic.url or ''}".rstrip())
    for dependency in version.get_dependencies():
        print(f"  {dependency}")
    for diagnostic in version.diagnostics:
        print(f"  [{diagnostic.severity.value}] {diagnostic.message}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="pomresolver", description="Resolve Maven POM dependency sets")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.api_host)
    serve.add_argument("--port", type=int, default=settings.api_port)

    resolve = sub.add_parser("resolve", help="Print the dependencies of an artifact")
    resolve.add_argument("coordinate", help="groupId:artifactId:version")
    resolve.add_argument("--offline", action="store_true", help="Never fetch missing descriptors")

    args = parser.parse_args(argv)
    setup_logging(log_level=settings.log_level.value, log_dir=settings.log_dir, component="pomresolver")

    for warning in settings.validate_settings():
        print(f"WARNING: {warning}", file=sys.stderr)

    if args.command == "serve":
        uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)
        return 0

    try:
        coordinate = Coordinate.parse(args.coordinate)
    except ValueError as e:
        parser.error(str(e))
    if not coordinate.version:
        parser.error("A version is required")
    if args.offline:
        settings = settings.model_copy(update={"remote_fetch_enabled": False})
    return _print_artifact(ArtifactRegistry(settings), coordinate)


if __name__ == "__main__":
    sys.exit(main())
