"""API route: /api/content. Site-wide text, contact details and policies."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import content_handler

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return content_handler(request)
