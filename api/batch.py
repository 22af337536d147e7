"""API route: /api/batch. Saves every pending admin change in a single commit."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from store.handlers import batch_handler

load_dotenv()
logging.basicConfig(level=logging.INFO)


def handler(request):
    return batch_handler(request)
