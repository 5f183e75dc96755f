"""
Bootstrap Admin Script
Sets (or clears) the is_admin flag on a user's profile with the service-role client.
Only admins can change the flag through the API, so the first admin is created here.

Usage:
    python -m app.scripts.bootstrap_admin <user_id> [--email EMAIL] [--revoke]
"""

import argparse
import sys

from app.database.supabase_client import SupabaseClient, get_service_supabase
from app.modules.profiles.schemas import ProfileUpdate
from app.modules.profiles.service import ProfileService
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def set_admin(supabase: Client, user_id: str, is_admin: bool, email: str = None):
    """Ensure the profile exists, then set its admin flag"""
    service = ProfileService(supabase)
    if service.get_profile(user_id) is None:
        logger.info(f"No profile for {user_id}, creating one")
        service.ensure_profile(user_id, email)
    profile = service.update_profile(user_id, ProfileUpdate(is_admin=is_admin), allow_admin_flag=True)
    logger.info(f"User {profile.user_id} is_admin={profile.is_admin}")
    return profile


def main():
    parser = argparse.ArgumentParser(description="Grant or revoke administrator status")
    parser.add_argument("user_id", help="Supabase auth user id")
    parser.add_argument("--email", default=None, help="Email stored on a newly created profile")
    parser.add_argument("--revoke", action="store_true", help="Clear the admin flag instead of setting it")
    args = parser.parse_args()

    if not SupabaseClient.has_service_role():
        logger.error("SUPABASE_SERVICE_ROLE_KEY is required to change admin status")
        sys.exit(1)

    try:
        set_admin(get_service_supabase(), args.user_id, not args.revoke, args.email)
    except Exception as e:
        logger.error(f"Error updating admin status: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
