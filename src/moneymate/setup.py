"""Interactive setup wizard for moneymate."""

from typing import Any

from moneymate.config import (
    create_default_config,
    get_config_path,
    load_config,
    save_json_config,
)
from moneymate.errors import RowStoreError
from moneymate.models import GOALS_TABLE


def mask_secret(secret: str) -> str:
    """Mask an API key for display."""
    if len(secret) > 12:
        return secret[:8] + "..." + secret[-4:]
    return "***"


def check_connection(url: str, api_key: str, user_id: str) -> int:
    """Fetch the user's goals to confirm the backend is reachable.

    Returns:
        Number of goals found

    Raises:
        RowStoreError: If the backend rejects the request
    """
    from moneymate.store import RestRowStore

    store = RestRowStore(url, api_key)
    return len(store.fetch_all(GOALS_TABLE, user_id))


def _prompt(label: str, existing: str | None, secret: bool = False) -> str:
    """Ask for a value, offering to keep an existing one."""
    if existing:
        shown = mask_secret(existing) if secret else existing
        keep = input(f"{label} [{shown}] keep? [Y/n]: ").strip().lower()
        if keep in ("", "y", "yes"):
            return existing
    return input(f"{label}: ").strip()


def run_setup(
    url: str | None = None,
    api_key: str | None = None,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Run the setup wizard.

    The flow:
    1. Ask for the backend REST URL and API key
    2. Ask for the user id that owns the data
    3. Check the connection
    4. Save the configuration

    Returns:
        The configuration dictionary
    """
    print("\n" + "=" * 50)
    print("  MONEYMATE SETUP")
    print("=" * 50)

    config = load_config()
    if config is None:
        config = create_default_config()
    backend = config.setdefault("backend", {})

    url = url or _prompt("Backend REST URL", backend.get("url"))
    api_key = api_key or _prompt("API key", backend.get("api_key"), secret=True)
    user_id = user_id or _prompt("User id", config.get("user_id"))

    if not (url and api_key and user_id):
        print("\nBackend URL, API key and user id are all required.")
        print("Run setup again once you have them.")
        return config

    backend["url"] = url
    backend["api_key"] = api_key
    config["user_id"] = user_id

    print("\nChecking connection...")
    try:
        goal_count = check_connection(url, api_key, user_id)
        print(f"Connected. Found {goal_count} goal(s) for this user.")
    except RowStoreError as e:
        print(f"Warning: {e}")
        print("Saving anyway; check the URL and key before syncing.")

    saved_path = save_json_config(config, get_config_path())

    print("\n" + "=" * 50)
    print("SETUP COMPLETE")
    print("=" * 50)
    print(f"\nConfiguration saved to: {saved_path}")
    print("\nYou can now run:")
    print("  moneymate due")
    print("  moneymate process-due --dry-run")

    return config


def show_current_config(config: dict[str, Any]) -> None:
    """Display the current configuration."""
    print("\n" + "=" * 50)
    print("CURRENT CONFIGURATION")
    print("=" * 50)

    print(f"\nUser id: {config.get('user_id') or 'Not configured'}")

    backend = config.get("backend", {})
    print(f"Backend URL: {backend.get('url') or 'Not configured'}")
    api_key = backend.get("api_key")
    print(f"API key: {mask_secret(api_key) if api_key else 'Not configured'}")
