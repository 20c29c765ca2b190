#!/usr/bin/env python3
"""
Admin Secret Hash Generator
Generates the bcrypt hash the API compares admin bearer tokens against.
Run this script to create the ADMIN_PASSWORD_HASH for your .env file.
"""
import getpass

from portfolio.utils.auth import hash_password


def main():
    """Prompt for the admin secret and print its hash."""
    print("=" * 60)
    print("Portfolio Admin Secret Hash Generator")
    print("=" * 60)
    print()
    print("Copy the output to your .env file as ADMIN_PASSWORD_HASH")
    print()

    # Get password securely (won't echo to screen)
    password = getpass.getpass("Enter admin secret: ")

    if not password:
        print("\nError: secret cannot be empty")
        return

    password_confirm = getpass.getpass("Confirm secret: ")

    if password != password_confirm:
        print("\nError: secrets do not match")
        return

    print("\nGenerating hash...")
    print("\nCopy this line to your .env file:\n")
    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")
    print()
    print("Keep this hash out of version control.")


if __name__ == "__main__":
    main()
