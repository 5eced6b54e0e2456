"""Sellz account service: registration, sign-in, password reset and
role-based authorization on top of FastAPI and SQLAlchemy.

Session tokens are stateless HS256 JWTs. The only way to invalidate one before
it expires is to change the account's password: the auth gate rejects tokens
issued before ``password_changed_at``.
"""
