"""
Recipe Box API.

A small FastAPI service that stores and lists user-submitted recipes and
reports who is signed in, from a Google id token or a Cloudflare Access
session.
"""
