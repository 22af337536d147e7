"""Vercel serverless entrypoint for the API root.

The storefront and the admin panel talk to the per-resource routes next to
this file; the root only reports which routes exist and which repository
backs them.
"""

from __future__ import annotations

import json

from dotenv import load_dotenv

from store.config import Settings

load_dotenv()


def handler(request):
    """Vercel Python serverless function handler."""
    settings = Settings.from_env()
    body = {
        "ok": True,
        "project": "shreeadvaya-store",
        "repository": settings.owner_repo,
        "branch": settings.branch,
        "routes": [
            "/api/products",
            "/api/categories",
            "/api/collections",
            "/api/hero",
            "/api/content",
            "/api/batch",
            "/api/upload",
            "/api/auth/login",
            "/api/auth/verify",
        ],
    }

    return {
        "statusCode": 200,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(body),
    }
