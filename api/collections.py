"""API route: /api/collections. Public GET, authenticated POST/PUT/DELETE on collections."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import resource_handler
from store.models import Resource

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return resource_handler(Resource.COLLECTIONS, request)
