"""API route: /api/auth/verify."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import verify_handler

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return verify_handler(request)
