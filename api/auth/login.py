"""API route: /api/auth/login. Exchanges the admin password for a bearer token."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import login_handler

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return login_handler(request)
