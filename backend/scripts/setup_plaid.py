#!/usr/bin/env python3
"""Configure and verify the Plaid API keys.

Bank linking itself happens in the browser through Plaid Link; this script
only deals with the client_id/secret pair the server uses.

Usage:
    python -m scripts.setup_plaid           # prompt, validate, offer keychain storage
    python -m scripts.setup_plaid --check   # validate what is already configured
    python -m scripts.setup_plaid --forget  # delete the keychain entries
"""

import argparse
import sys

from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    set_credential,
    stored_credentials,
)

ENVIRONMENTS = {"1": "sandbox", "2": "production"}


def validate_credentials(client_id: str, secret: str, env: str) -> None:
    """Create a throwaway link token to prove the keys work in ``env``.

    Raises:
        ProviderError: If Plaid rejects the request.
    """
    client = PlaidClient(client_id=client_id, secret=secret, environment=env)
    if not client.create_link_token():
        raise ProviderError("No link_token in response", provider_name=client.provider_name)


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    answer = input("\nStore these credentials in the system keychain? [Y/n] ").strip().lower()
    if answer not in ("", "y", "yes"):
        print("  Skipped keychain storage.")
        return
    for key, value in credentials.items():
        if set_credential(key, value):
            print(f"  Stored {key} in keychain")
        else:
            print(f"  Failed to store {key}")


def _print_hints() -> None:
    print()
    print("Common issues:")
    print("  - Incorrect client_id or secret")
    print("  - Keys from a different environment than the one selected")
    print("  - Network connectivity issue")


def check() -> int:
    """Validate the keys the server would use right now."""
    from config import settings

    in_keychain = stored_credentials()
    for key in sorted(CREDENTIAL_KEYS):
        source = "keychain" if key in in_keychain else "environment/.env"
        print(f"  {key}: {source if getattr(settings, key) else 'not set'}")

    if not (settings.PLAID_CLIENT_ID and settings.PLAID_SECRET):
        print("Error: Plaid credentials are not configured")
        return 1

    print(f"Validating against {settings.PLAID_ENVIRONMENT}...")
    try:
        validate_credentials(settings.PLAID_CLIENT_ID, settings.PLAID_SECRET, settings.PLAID_ENVIRONMENT)
    except ProviderError as e:
        print(f"Error: {e}")
        _print_hints()
        return 1
    print("Credentials OK")
    return 0


def forget() -> int:
    """Delete every Plaid key from the keychain."""
    removed = [key for key in sorted(CREDENTIAL_KEYS) if delete_credential(key)]
    if not removed:
        print("No Plaid credentials stored in keychain.")
    for key in removed:
        print(f"  Deleted {key}")
    return 0


def interactive() -> int:
    """Prompt for keys, validate them and offer to keep them in the keychain."""
    print("Plaid API Setup")
    print("=" * 50)
    print()
    print("Copy your client_id and secret from https://dashboard.plaid.com/ (Developers > Keys).")
    print()

    client_id = input("Enter your Plaid client_id: ").strip()
    if not client_id:
        print("Error: No client_id provided")
        return 1

    secret = input("Enter your Plaid secret: ").strip()
    if not secret:
        print("Error: No secret provided")
        return 1

    print()
    print("Choose environment:")
    print("  1. sandbox (for testing with fake data)")
    print("  2. production (for live use)")
    env = ENVIRONMENTS.get(input("Enter choice (1 or 2) [1]: ").strip() or "1", "sandbox")

    print()
    print(f"Validating credentials against {env} environment...")
    try:
        validate_credentials(client_id, secret, env)
    except ProviderError as e:
        print(f"Error: {e}")
        _print_hints()
        return 1

    print()
    print("Success! Add the following to your .env file:")
    print()
    print(f"PLAID_CLIENT_ID={client_id}")
    print(f"PLAID_SECRET={secret}")
    print(f"PLAID_ENVIRONMENT={env}")

    _offer_keychain_store({"PLAID_CLIENT_ID": client_id, "PLAID_SECRET": secret})
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Configure the Plaid API keys.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--check", action="store_true", help="Validate the configured keys")
    mode.add_argument("--forget", action="store_true", help="Delete keys stored in the keychain")
    args = parser.parse_args(argv)

    if args.check:
        code = check()
    elif args.forget:
        code = forget()
    else:
        code = interactive()
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
