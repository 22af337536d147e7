from pathlib import Path
import base64
import hashlib
import json
import random
import sys
import threading

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from store.crud import DataStore
from store.github import GitHubClient
from store.resources import IdGenerator

API_URL = "https://api.github.test"
OWNER = "o"
REPO = "r"
FIXED_MS = 1714557600000  # 2024-05-01T10:00:00.000Z


def encode_file(content):
    if isinstance(content, bytes):
        return content
    return json.dumps(content, indent=2, ensure_ascii=False).encode("utf-8")


class FakeGitHub:
    """In-memory repository answering the Contents and Git Data API calls."""

    def __init__(self, branch="main"):
        self.branch = branch
        self.blobs = {}
        self.trees = {}
        self.commits = {}
        self.refs = {}
        self.calls = []
        self.failures = {}
        self.repo_status = 200
        self._lock = threading.Lock()
        self._counter = 0

    # -- object store ------------------------------------------------------

    def _sha(self, kind, payload):
        self._counter += 1
        return hashlib.sha1(f"{kind}:{self._counter}:".encode() + payload).hexdigest()

    def put_blob(self, data):
        sha = self._sha("blob", data)
        self.blobs[sha] = data
        return sha

    def put_tree(self, entries):
        sha = self._sha("tree", json.dumps(entries, sort_keys=True).encode())
        self.trees[sha] = entries
        return sha

    def put_commit(self, tree, parents, message):
        sha = self._sha("commit", message.encode())
        self.commits[sha] = {"tree": tree, "parents": parents, "message": message}
        return sha

    def seed(self, files):
        entries = [
            {"path": path, "mode": "100644", "type": "blob", "sha": self.put_blob(encode_file(content))}
            for path, content in files.items()
        ]
        commit = self.put_commit(self.put_tree(entries), [], "Initial commit")
        self.refs[self.branch] = commit
        return commit

    # -- inspection ---------------------------------------------------------

    @property
    def head(self):
        return self.refs.get(self.branch)

    def tree_at(self, commit_sha=None):
        commit = self.commits[commit_sha or self.head]
        return {e["path"]: e for e in self.trees[commit["tree"]]}

    def read_bytes(self, path, commit_sha=None):
        return self.blobs[self.tree_at(commit_sha)[path]["sha"]]

    def read(self, path, commit_sha=None):
        return json.loads(self.read_bytes(path, commit_sha).decode("utf-8"))

    @property
    def mutations(self):
        return [c for c in self.calls if c[0] in ("POST", "PATCH", "PUT", "DELETE")]

    # -- transport ----------------------------------------------------------

    def handle(self, request):
        with self._lock:
            return self._handle(request)

    def _handle(self, request):
        method = request.method
        prefix = f"/repos/{OWNER}/{REPO}"
        path = request.url.path
        assert path.startswith(prefix), path
        rest = path[len(prefix):].lstrip("/")
        self.calls.append((method, rest))

        kind = "/".join(rest.split("/")[:2])
        status = self.failures.get((method, kind))
        if status:
            return httpx.Response(status, json={"message": f"injected {status}"})

        body = json.loads(request.content) if request.content else None

        if rest == "":
            if self.repo_status != 200:
                return httpx.Response(self.repo_status, json={"message": "nope"})
            return httpx.Response(200, json={"full_name": f"{OWNER}/{REPO}"})

        if rest.startswith("contents/") and method == "GET":
            ref = request.url.params.get("ref") or self.branch
            commit = self.refs.get(ref, ref)
            entry = self.tree_at(commit).get(rest[len("contents/"):]) if commit in self.commits else None
            if entry is None:
                return httpx.Response(404, json={"message": "Not Found"})
            data = self.blobs[entry["sha"]]
            return httpx.Response(200, json={
                "sha": entry["sha"],
                "encoding": "base64",
                "content": base64.b64encode(data).decode("ascii"),
            })

        if rest.startswith("git/ref/heads/") and method == "GET":
            sha = self.refs.get(rest[len("git/ref/heads/"):])
            if sha is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"object": {"sha": sha, "type": "commit"}})

        if rest.startswith("git/commits/") and method == "GET":
            sha = rest[len("git/commits/"):]
            commit = self.commits[sha]
            return httpx.Response(200, json={
                "sha": sha,
                "tree": {"sha": commit["tree"]},
                "parents": [{"sha": p} for p in commit["parents"]],
            })

        if rest.startswith("git/trees/") and method == "GET":
            sha = rest[len("git/trees/"):]
            return httpx.Response(200, json={"sha": sha, "tree": self.trees[sha], "truncated": False})

        if rest.startswith("git/blobs/") and method == "GET":
            data = self.blobs[rest[len("git/blobs/"):]]
            return httpx.Response(200, json={"content": base64.b64encode(data).decode("ascii"), "encoding": "base64"})

        if rest == "git/blobs" and method == "POST":
            return httpx.Response(201, json={"sha": self.put_blob(base64.b64decode(body["content"]))})

        if rest == "git/trees" and method == "POST":
            entries = {}
            if body.get("base_tree"):
                entries = {e["path"]: dict(e) for e in self.trees[body["base_tree"]]}
            for entry in body["tree"]:
                entries[entry["path"]] = dict(entry)
            return httpx.Response(201, json={"sha": self.put_tree(list(entries.values()))})

        if rest == "git/commits" and method == "POST":
            sha = self.put_commit(body["tree"], body["parents"], body["message"])
            return httpx.Response(201, json={"sha": sha})

        if rest.startswith("git/refs/heads/") and method == "PATCH":
            branch = rest[len("git/refs/heads/"):]
            if branch not in self.refs:
                return httpx.Response(404, json={"message": "Not Found"})
            new = body["sha"]
            if not body.get("force") and self.refs[branch] not in self.commits[new]["parents"]:
                return httpx.Response(422, json={"message": "Update is not a fast forward"})
            self.refs[branch] = new
            return httpx.Response(200, json={"object": {"sha": new}})

        return httpx.Response(404, json={"message": f"No fake route for {method} {rest}"})


@pytest.fixture
def fake_github():
    fake = FakeGitHub()
    fake.seed({"README.md": b"# store\n", "data/products.json": []})
    return fake


@pytest.fixture
def github_client(fake_github):
    http = httpx.Client(transport=httpx.MockTransport(fake_github.handle), base_url=API_URL)
    client = GitHubClient(token="test-token", owner=OWNER, repo=REPO, api_url=API_URL, http=http)
    yield client
    client.close()


@pytest.fixture
def id_generator():
    return IdGenerator(clock=lambda: FIXED_MS, rng=random.Random(7))


@pytest.fixture
def data_store(github_client, id_generator):
    return DataStore(github_client, branch="main", ids=id_generator)


@pytest.fixture
def github_env(monkeypatch, fake_github):
    """Point ``Settings.from_env`` and ``store.handlers`` at the fake repository."""
    for name in ("VERCEL_GIT_REPO_OWNER", "VERCEL_GIT_REPO_SLUG", "GITHUB_BRANCH", "ALLOWED_ORIGIN",
                 "TOKEN_TTL_SECONDS", "GITHUB_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    monkeypatch.setenv("GITHUB_OWNER", OWNER)
    monkeypatch.setenv("GITHUB_REPO", REPO)
    monkeypatch.setenv("GITHUB_API_URL", API_URL)
    monkeypatch.setenv("ADMIN_PASSWORD", "s3cret")

    import store.handlers

    monkeypatch.setattr(
        store.handlers,
        "http_client",
        lambda settings: httpx.Client(
            transport=httpx.MockTransport(fake_github.handle), base_url=settings.api_url
        ),
    )
    return fake_github
