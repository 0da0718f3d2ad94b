#!/usr/bin/env python3
"""
Property Registry Command Line Interface.

Commands:
    - serve: Start the API server
    - check: Verify installation and configuration
    - info: Display system and registry information
    - backup: Copy the JSON snapshot file aside

Usage:
    property-registry serve [--host HOST] [--port PORT] [--debug] [--production]
    property-registry check
    property-registry info
    property-registry backup [--output PATH]
    property-registry --version
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from property_registry import __version__


def cmd_serve(args):
    """Start the property registry API server."""
    load_dotenv()

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", 5000))
    debug = args.debug or os.getenv("FLASK_DEBUG", "").lower() == "true"

    if not args.production:
        from api import run_server

        run_server(host=host, port=port, debug=debug)
        return

    try:
        import gunicorn.app.base
    except ImportError:
        print("Error: gunicorn not installed. Install with: pip install property-registry[production]")
        sys.exit(1)

    from api import create_app
    from monitoring import configure_logging

    class StandaloneApplication(gunicorn.app.base.BaseApplication):
        """Gunicorn WSGI wrapper configured from a dictionary of options."""

        def __init__(self, app, options=None):
            self.options = options or {}
            self.application = app
            super().__init__()

        def load_config(self):
            for key, value in self.options.items():
                if key in self.cfg.settings and value is not None:
                    self.cfg.set(key.lower(), value)

        def load(self):
            return self.application

    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    print(f"Starting property registry API server on {host}:{port}")

    # One worker: the registry lock and logical clock are per-process
    options = {
        "bind": f"{host}:{port}",
        "workers": 1,
        "threads": args.threads or int(os.getenv("THREADS", 4)),
        "worker_class": "gthread",
        "timeout": 120,
        "accesslog": "-",
        "errorlog": "-",
    }
    StandaloneApplication(create_app(), options).run()


def cmd_check(args):
    """Check installation and configuration."""
    load_dotenv()
    print("Property Registry Installation Check")
    print("=" * 40)

    checks = []

    try:
        from property_registry import PropertyRegistry

        PropertyRegistry(deployer="check")
        checks.append(("Registry core", "OK"))
    except ImportError as e:
        checks.append(("Registry core", f"FAIL: {e}"))

    try:
        import api  # noqa: F401

        checks.append(("Flask API", "OK"))
    except ImportError as e:
        checks.append(("Flask API", f"FAIL: {e}"))

    try:
        from encryption import is_encryption_enabled

        status = "OK" if is_encryption_enabled() else "SKIP (no encryption key set)"
        checks.append(("Encryption at rest", status))
    except ImportError as e:
        checks.append(("Encryption at rest", f"FAIL: {e}"))

    try:
        from storage import StorageError, get_storage_backend

        try:
            storage = get_storage_backend()
            status = "OK" if storage.is_available() else "WARN (not available)"
            checks.append((f"Storage ({storage.__class__.__name__})", status))
        except StorageError as e:
            checks.append(("Storage", f"FAIL: {e}"))
    except ImportError as e:
        checks.append(("Storage", f"FAIL: {e}"))

    try:
        import monitoring  # noqa: F401

        checks.append(("Monitoring", "OK"))
    except ImportError as e:
        checks.append(("Monitoring", f"FAIL: {e}"))

    print()
    all_ok = True
    for name, status in checks:
        icon = "✓" if status == "OK" else ("○" if "SKIP" in status or "WARN" in status else "✗")
        print(f"  {icon} {name}: {status}")
        if "FAIL" in status:
            all_ok = False

    print()
    if all_ok:
        print("All checks passed!")
        return 0
    else:
        print("Some checks failed. See above for details.")
        return 1


def cmd_info(args):
    """Display system, configuration and stored registry information."""
    import platform

    from storage import StorageError, get_storage_backend

    load_dotenv()
    print("Property Registry System Information")
    print("=" * 40)
    print(f"Version: {__version__}")
    print(f"Python: {platform.python_version()}")
    print(f"Platform: {platform.platform()}")

    print()
    print("Configuration:")
    print(f"  PROPERTY_REGISTRY_DEPLOYER: {os.getenv('PROPERTY_REGISTRY_DEPLOYER', 'deployer (default)')}")
    print(f"  PROPERTY_REGISTRY_API_KEY: {'configured' if os.getenv('PROPERTY_REGISTRY_API_KEY') else 'not set'}")
    print(f"  PROPERTY_REGISTRY_REQUIRE_AUTH: {os.getenv('PROPERTY_REGISTRY_REQUIRE_AUTH', 'true (default)')}")
    print(f"  STORAGE_BACKEND: {os.getenv('STORAGE_BACKEND', 'json (default)')}")
    print(f"  REGISTRY_DATA_FILE: {os.getenv('REGISTRY_DATA_FILE', 'registry_data.json (default)')}")
    print(f"  PROPERTY_REGISTRY_ENCRYPTION_KEY: {'configured' if os.getenv('PROPERTY_REGISTRY_ENCRYPTION_KEY') else 'not set'}")
    print(f"  LOG_LEVEL: {os.getenv('LOG_LEVEL', 'INFO (default)')}")
    print(f"  LOG_FORMAT: {os.getenv('LOG_FORMAT', 'console (default)')}")

    print()
    print("Storage:")
    try:
        storage = get_storage_backend()
        for key, value in storage.get_info().items():
            print(f"  {key}: {value}")
        data = storage.load_state()
    except StorageError as e:
        print(f"  Error: {e}")
        return 1

    print()
    print("Registry:")
    if not data:
        print("  No snapshot saved yet")
        return 0

    from property_registry import PropertyRegistry

    registry = PropertyRegistry.from_dict(data["state"])
    print(f"  clock: {data.get('clock', 0)}")
    for key, value in registry.get_statistics().items():
        print(f"  {key}: {value}")

    return 0


def cmd_backup(args):
    """Copy the saved JSON snapshot to a backup file."""
    from storage import JSONFileStorage, StorageError, get_storage_backend

    load_dotenv()
    try:
        storage = get_storage_backend()
        if not isinstance(storage, JSONFileStorage):
            print(f"Error: {storage.__class__.__name__} has no snapshot file to back up")
            return 1
        backup_path = storage.backup(args.output)
    except StorageError as e:
        print(f"Error: {e}")
        return 1

    print(f"Backed up snapshot to {backup_path}")
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="property-registry",
        description="Property Registry - identities, assets and attestations",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port to bind to (default: 5000)")
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    serve_parser.add_argument(
        "--production", action="store_true", help="Use gunicorn for production"
    )
    serve_parser.add_argument("--threads", type=int, help="Worker threads (production mode)")

    subparsers.add_parser("check", help="Check installation and configuration")
    subparsers.add_parser("info", help="Display system information")

    backup_parser = subparsers.add_parser("backup", help="Back up the JSON snapshot file")
    backup_parser.add_argument("--output", "-o", help="Backup path (default: timestamped copy)")

    args = parser.parse_args()

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "check":
        sys.exit(cmd_check(args))
    elif args.command == "info":
        sys.exit(cmd_info(args))
    elif args.command == "backup":
        sys.exit(cmd_backup(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
