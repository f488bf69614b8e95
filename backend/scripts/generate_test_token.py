# FILE: backend/scripts/generate_test_token.py
# Prints bridge tokens for manual API testing (Postman, curl).
# The first authenticated request with a token creates its user in MongoDB.
# RUN: python backend/scripts/generate_test_token.py [--multiple]

import os
import sys
import json
import argparse
from datetime import timedelta

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from ecopromise.core.security import create_bridge_token

TEST_USER = {
    "sub": "test-user-google-id-123",
    "email": "testuser@example.com",
    "name": "Test User",
    "picture": "https://example.com/avatar.jpg",
}

TEST_USERS = [
    {"sub": "test-user-1-google-id", "email": "user1@example.com", "name": "Alice Green",
     "picture": "https://example.com/alice.jpg"},
    {"sub": "test-user-2-google-id", "email": "user2@example.com", "name": "Bob Eco",
     "picture": "https://example.com/bob.jpg"},
    {"sub": "admin-user-google-id", "email": "admin@example.com", "name": "Admin User",
     "picture": "https://example.com/admin.jpg"},
]

def _token_for(user: dict, days: int) -> str:
    return create_bridge_token(
        sub=user["sub"],
        email=user["email"],
        name=user["name"],
        picture=user["picture"],
        expires_delta=timedelta(days=days),
    )

def generate_test_token(days: int):
    token = _token_for(TEST_USER, days)
    print("--- EcoPromise Test Bridge Token ---")
    print(token)
    print("--- User Details ---")
    print(json.dumps(TEST_USER, indent=2))
    print("Usage: Authorization: Bearer <token>")
    print(f"Token valid for: {days} days")

def generate_multiple_tokens(days: int):
    print("--- Generating Test Tokens for Different Users ---")
    for user in TEST_USERS:
        print(f"\n{user['name']} ({user['email']})")
        print(_token_for(user, days))
    print("\nNote: promote admin@example.com to role 'admin' in MongoDB to use moderation endpoints.")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate EcoPromise bridge tokens signed with NEXTAUTH_SECRET.")
    parser.add_argument("--multiple", action="store_true", help="Generate tokens for several test users")
    parser.add_argument("--days", type=int, default=7, help="Token lifetime in days")
    args = parser.parse_args()

    if args.multiple:
        generate_multiple_tokens(args.days)
    else:
        generate_test_token(args.days)
