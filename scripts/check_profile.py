#!/usr/bin/env python3
"""
Check a dashboard user's profile row.

Verifies that the profile exists, has a valid role, and carries the fields the
dashboard and admin panel depend on (client_id for every role, full_name for
admins, who provision agents under it).

Usage:
    python scripts/check_profile.py <user_id>
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from colorama import Fore, Style, init

from app.core.errors import DashboardError
from app.schemas.auth import Role
from app.services.profile_store import ProfileStore
from app.services.session_client import create_supabase_client

init(autoreset=True)


def check_profile(user_id: str) -> bool:
    """Print a report for ``user_id``; returns True when the profile is usable."""
    print(f"{Style.BRIGHT}Checking profile for user: {user_id}")
    print("=" * 60)

    try:
        store = ProfileStore(create_supabase_client())
        profile = store.get_profile(user_id)
    except DashboardError as e:
        print(f"{Fore.RED}[ERROR] {e.message}")
        return False

    print(f"{Fore.GREEN}[OK] Profile found:")
    print(f"   Name: {profile.full_name or '-'}")
    print(f"   Role: {profile.role.value}")
    print(f"   Client ID: {profile.client_id or '-'}")
    print(f"   Agent name: {profile.agent_name or '-'}")

    ok = True
    if not profile.client_id and profile.role != Role.super_admin:
        print(f"{Fore.RED}[FAIL] No client_id: the dashboard will show no data")
        ok = False
    if profile.role == Role.admin and not profile.full_name:
        print(f"{Fore.RED}[FAIL] Admin without full_name: cannot add agents")
        ok = False
    if ok:
        print(f"{Fore.GREEN}[PASS] Profile is usable")
    return ok


def main() -> int:
    parser = argparse.ArgumentParser(description="Check a dashboard user's profile row")
    parser.add_argument("user_id", help="Auth user id (profiles.id)")
    args = parser.parse_args()
    return 0 if check_profile(args.user_id) else 1


if __name__ == "__main__":
    sys.exit(main())
