"""Authentication primitives.

Learn: Users register with email/password, confirm the address through
a mailed link, then log in to receive a 1-hour JWT bearer token.

- password.py → bcrypt hashing + password policy
- jwt.py → token issuance and verification
- codes.py → URL-safe transport encoding for confirmation codes
- dependencies.py → FastAPI bearer-token dependency
"""
