"""API route: /api/upload. Commits uploaded images and returns their raw URLs."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import upload_handler

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return upload_handler(request)
