"""Authentication and authorization.

Learn: one authentication path — username/password → signed session
token (JWT), carried in an httpOnly cookie or the Authorization header.
Every protected route resolves the token to an Identity; admin routes
also check the directory's admin flag.
"""
