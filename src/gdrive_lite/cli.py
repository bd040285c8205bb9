"""CLI for gdrive-lite - credential management and Drive file operations.

Usage:
    gdrive-lite init                          # Create config directory, show setup instructions
    gdrive-lite status                        # Show credential status
    gdrive-lite auth login                    # Interactive OAuth login
    gdrive-lite auth status                   # Show OAuth token status
    gdrive-lite auth refresh                  # Refresh OAuth token
    gdrive-lite auth revoke                   # Revoke OAuth token
    gdrive-lite auth import <path>            # Import OAuth credentials
    gdrive-lite drive ls                      # List files
    gdrive-lite drive info <ref>              # Show file metadata
    gdrive-lite drive download <ref> [dest]   # Download a file
    gdrive-lite drive upload <path>           # Upload a file
    gdrive-lite drive update <ref> <path>     # Replace a file's content
    gdrive-lite drive delete <ref>            # Delete a file

<ref> is a Drive URL (https://drive.google.com/open?id=...) or a file ID.
"""

from __future__ import annotations

import argparse
import json
import shutil
import sys
from pathlib import Path


def cmd_init() -> int:
    """Initialize the gdrive-lite config directory."""
    from gdrive_lite.config import (
        CLIENT_ID_ENV,
        CLIENT_SECRET_ENV,
        CONFIG_DIR,
        ENV_FILE,
        GOOGLE_CREDENTIALS,
        GOOGLE_TOKEN,
        ensure_config_dir,
    )

    print("=" * 60)
    print("GDRIVE-LITE SETUP")
    print("=" * 60)
    print()

    ensure_config_dir()
    print(f"Created: {CONFIG_DIR}/")
    print()

    print("Credential locations:")
    print()
    print(f"  {ENV_FILE}")
    print(f"    {CLIENT_ID_ENV}, {CLIENT_SECRET_ENV}")
    print()
    print(f"  {GOOGLE_CREDENTIALS}")
    print("    OAuth client credentials from Google Cloud Console")
    print()
    print(f"  {GOOGLE_TOKEN}")
    print("    OAuth tokens (created by 'gdrive-lite auth login')")
    print()
    print("-" * 60)
    print()

    status = _check_status()
    client = status["client"]

    if client["credentials"] or (client["client_id_env"] and client["client_secret_env"]):
        print("OAuth client credentials configured")
    else:
        print("For Google OAuth, download credentials from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print(f"  Import with: gdrive-lite auth import <path>  (saved as {GOOGLE_CREDENTIALS})")
        print()

    return 0


def cmd_status() -> int:
    """Show status of configured credentials."""
    status = _check_status()
    client = status["client"]

    print("=" * 60)
    print("GDRIVE-LITE CREDENTIAL STATUS")
    print("=" * 60)
    print()
    print(f"Config dir: {status['config_dir']}")
    print()
    print(f"  .env:                   {'[x]' if status['env_file'] else '[ ]'}")
    print(f"  client id (env):        {'[x]' if client['client_id_env'] else '[ ]'}")
    print(f"  client secret (env):    {'[x]' if client['client_secret_env'] else '[ ]'}")
    print(f"  credentials.json:       {'[x]' if client['credentials'] else '[ ]'}")
    print(f"  token.json:             {'[x]' if status['token'] else '[ ]'}")
    print()
    return 0


def _check_status() -> dict:
    """Get credential status."""
    from gdrive_lite.config import get_credential_status

    return get_credential_status()


def _make_auth(scopes: list[str], manual: bool = False, no_browser: bool = False):
    """Build a GoogleOAuth with an interactive code receiver."""
    from gdrive_lite.google import GoogleOAuth, LocalServerReceiver, ManualPasteReceiver

    if manual:
        receiver = ManualPasteReceiver(open_browser=not no_browser)
    else:
        receiver = LocalServerReceiver(open_browser=not no_browser)
    return GoogleOAuth(scopes=scopes, receiver=receiver)


def auth_login(scopes: list[str], no_browser: bool = False, manual: bool = False) -> int:
    """Interactive Google OAuth login."""
    from gdrive_lite.google import AuthState, CredentialsNotFoundError, GoogleAuthError

    print("=" * 60)
    print("GDRIVE-LITE GOOGLE LOGIN")
    print("=" * 60)

    try:
        auth = _make_auth(scopes, manual=manual, no_browser=no_browser)
    except CredentialsNotFoundError as e:
        print(f"\nError: {e}")
        print("Run 'gdrive-lite init' for setup instructions")
        return 1

    if auth.state is AuthState.VALID_TOKEN:
        print("\nAlready authorized with valid token")
        return auth_status(scopes)

    if auth.state is AuthState.EXPIRED_TOKEN:
        print("\nToken expired, attempting refresh...")

    print(f"\nScopes: {', '.join(scopes)}")
    if not manual:
        print(f"Waiting for the consent redirect on {auth.receiver.redirect_uri}")

    try:
        auth.ensure_valid_token()
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        return 1

    print("\nToken saved successfully!")
    return auth_status(scopes)


def auth_status(scopes: list[str]) -> int:
    """Show Google OAuth token status."""
    from gdrive_lite.google import CredentialsNotFoundError, GoogleOAuth

    try:
        auth = GoogleOAuth(scopes=scopes)
    except CredentialsNotFoundError as e:
        print(f"Error: {e}")
        print("Run 'gdrive-lite init' for setup instructions")
        return 1

    info = auth.get_token_info()

    if info["status"] == "no_token":
        print("No token found - run 'gdrive-lite auth login'")
        return 1

    print(f"Status        : {info['status']}")
    print(f"Scopes        : {', '.join(info.get('scopes', []))}")
    print(f"Expires in    : {info.get('expires_in', 'unknown')}")
    print(f"Refresh token : {'yes' if info['has_refresh_token'] else 'no'}")
    return 0


def auth_refresh(scopes: list[str]) -> int:
    """Refresh Google OAuth token."""
    from gdrive_lite.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth

    print("=" * 60)
    print("REFRESHING OAUTH TOKEN")
    print("=" * 60)

    try:
        auth = GoogleOAuth(scopes=scopes)
    except CredentialsNotFoundError as e:
        print(f"Error: {e}")
        print("Run 'gdrive-lite init' for setup instructions")
        return 1

    if not auth.is_authorized():
        print("No valid token - run 'gdrive-lite auth login'")
        return 1

    try:
        auth.refresh()
    except GoogleAuthError as e:
        print(f"\nRefresh failed: {e}")
        print("You may need to re-authenticate: gdrive-lite auth login")
        return 1

    print("\nToken refreshed successfully!")
    return auth_status(scopes)


def auth_revoke(scopes: list[str]) -> int:
    """Revoke Google OAuth token."""
    from gdrive_lite.google import CredentialsNotFoundError, GoogleOAuth

    try:
        auth = GoogleOAuth(scopes=scopes)
    except CredentialsNotFoundError:
        print("No credentials to revoke")
        return 0

    auth.revoke_token()
    print("Token revoked and local cache cleared")
    return 0


def auth_import(source_path: str) -> int:
    """Import OAuth credentials from a file."""
    from gdrive_lite.config import GOOGLE_CREDENTIALS, ensure_config_dir

    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}")
        return 1

    try:
        with open(source) as f:
            data = json.load(f)

        if "installed" not in data and "web" not in data:
            print("Error: Invalid OAuth credentials format")
            print("Expected 'installed' or 'web' key in JSON")
            return 1

        key = "installed" if "installed" in data else "web"
        client_id = data[key].get("client_id", "unknown")

    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}")
        return 1

    ensure_config_dir()
    shutil.copy2(source, GOOGLE_CREDENTIALS)

    print("Imported OAuth credentials")
    print(f"  From: {source}")
    print(f"  To:   {GOOGLE_CREDENTIALS}")
    print(f"  Client ID: {client_id[:40]}...")
    print()
    print("Next: Run 'gdrive-lite auth login' to authorize")
    return 0


def drive_command(args: argparse.Namespace, scopes: list[str]) -> int:
    """Run a Drive file operation."""
    from gdrive_lite.drive import DriveClient, DriveError
    from gdrive_lite.google import CredentialsNotFoundError, GoogleAuthError

    try:
        auth = _make_auth(scopes, manual=args.manual, no_browser=args.no_browser)
    except CredentialsNotFoundError as e:
        print(f"Error: {e}")
        print("Run 'gdrive-lite init' for setup instructions")
        return 1

    client = DriveClient(auth=auth)

    try:
        if args.drive_command == "ls":
            for f in client.list_files(max_results=args.max, query=args.query, folder_id=args.folder):
                kind = "d" if f.is_folder else "-"
                size = "" if f.size is None else str(f.size)
                print(f"{kind} {f.id}  {size:>10}  {f.name}")
        elif args.drive_command == "info":
            print(json.dumps(client.file_metadata(args.ref), indent=2))
        elif args.drive_command == "download":
            path = client.download_file(args.ref, args.dest)
            print(f"Downloaded to {path}")
        elif args.drive_command == "upload":
            file = client.upload_file(args.path, name=args.name, folder_id=args.folder)
            print(file.open_url)
        elif args.drive_command == "update":
            file = client.update_file(args.ref, args.path)
            print(f"Updated {file.name} ({file.id})")
        elif args.drive_command == "delete":
            client.delete_file(args.ref)
            print(f"Deleted {args.ref}")
    except (GoogleAuthError, DriveError, ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1

    return 0


def parse_scopes(scope_str: str | None) -> list[str]:
    """Parse comma-separated scopes."""
    if not scope_str:
        return ["drive"]
    return [s.strip() for s in scope_str.split(",")]


def _add_scopes_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--scopes",
        type=str,
        default="drive",
        help="Comma-separated scopes (default: drive)",
    )


def _add_consent_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Paste the redirect URL instead of running a local listener",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gdrive-lite",
        description="Google Drive file operations with OAuth token management",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize config directory")
    subparsers.add_parser("status", help="Show credential status")

    # auth subcommand
    auth_parser = subparsers.add_parser("auth", help="Google OAuth management")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command", help="Command")

    login_parser = auth_subparsers.add_parser("login", help="Interactive OAuth login")
    _add_scopes_arg(login_parser)
    _add_consent_args(login_parser)

    for name, help_text in (
        ("status", "Show token status"),
        ("refresh", "Refresh token"),
        ("revoke", "Revoke token"),
    ):
        _add_scopes_arg(auth_subparsers.add_parser(name, help=help_text))

    import_parser = auth_subparsers.add_parser("import", help="Import OAuth credentials")
    import_parser.add_argument("path", help="Path to credentials.json file")

    # drive subcommand
    drive_parser = subparsers.add_parser("drive", help="Drive file operations")
    _add_scopes_arg(drive_parser)
    _add_consent_args(drive_parser)
    drive_subparsers = drive_parser.add_subparsers(dest="drive_command", help="Command")

    ls_parser = drive_subparsers.add_parser("ls", help="List files")
    ls_parser.add_argument("--query", "-q", help="Drive query syntax filter")
    ls_parser.add_argument("--folder", help="Only list files in this folder ID")
    ls_parser.add_argument("--max", type=int, default=100, help="Maximum results (default: 100)")

    info_parser = drive_subparsers.add_parser("info", help="Show file metadata")
    info_parser.add_argument("ref", help="Drive URL or file ID")

    download_parser = drive_subparsers.add_parser("download", help="Download a file")
    download_parser.add_argument("ref", help="Drive URL or file ID")
    download_parser.add_argument("dest", nargs="?", default=".", help="Target file or directory")

    upload_parser = drive_subparsers.add_parser("upload", help="Upload a file")
    upload_parser.add_argument("path", help="Local file to upload")
    upload_parser.add_argument("--name", help="Name in Drive (default: local file name)")
    upload_parser.add_argument("--folder", help="Parent folder ID")

    update_parser = drive_subparsers.add_parser("update", help="Replace a file's content")
    update_parser.add_argument("ref", help="Drive URL or file ID")
    update_parser.add_argument("path", help="Local file with the new content")

    delete_parser = drive_subparsers.add_parser("delete", help="Delete a file")
    delete_parser.add_argument("ref", help="Drive URL or file ID")

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if args.verbose:
        from gdrive_lite.config import configure_logging

        configure_logging("DEBUG")

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "auth":
        scopes = parse_scopes(getattr(args, "scopes", None))

        if args.auth_command == "login":
            return auth_login(scopes, args.no_browser, args.manual)
        elif args.auth_command == "status":
            return auth_status(scopes)
        elif args.auth_command == "refresh":
            return auth_refresh(scopes)
        elif args.auth_command == "revoke":
            return auth_revoke(scopes)
        elif args.auth_command == "import":
            return auth_import(args.path)
        else:
            auth_parser.print_help()
            return 0

    if args.command == "drive":
        if args.drive_command is None:
            drive_parser.print_help()
            return 0
        return drive_command(args, parse_scopes(args.scopes))

    return 0


if __name__ == "__main__":
    sys.exit(main())
