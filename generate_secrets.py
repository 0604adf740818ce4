#!/usr/bin/env python3
"""
Generate a secure secret for the Pick'em application
Run this script to generate the SECRET_KEY that signs bearer tokens
"""

import secrets


def generate_secrets():
    """Generate a secure random signing key"""
    print("🔐 Generating secure secrets for Pick'em...")
    print("=" * 50)

    print(f"SECRET_KEY={secrets.token_urlsafe(32)}")

    print("=" * 50)
    print("📝 Copy this value to your .env file")
    print("⚠️  Rotating SECRET_KEY invalidates every issued token")


if __name__ == "__main__":
    generate_secrets()
