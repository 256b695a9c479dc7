"""Tests for the GitHub REST client."""

import json

import httpx
import pytest

from qaai.errors.exceptions import CollaboratorError, PayloadError
from qaai.integrations.github import DIFF_ACCEPT, GitHubClient, PullRequestRef

PR_URL = "https://github.com/acme/shop/pull/17"

PR_JSON = {
    "title": "Add checkout",
    "body": "Adds the checkout page",
    "state": "open",
    "user": {"login": "dev"},
    "base": {"ref": "main"},
    "head": {"ref": "feature/checkout", "sha": "abc123"},
    "changed_files": 4,
    "additions": 120,
    "deletions": 8,
}


def _client(handler, token="ghp_test"):
    return GitHubClient(token=token, base_url="https://api.github.test", transport=httpx.MockTransport(handler))


def test_parse_pr_url():
    assert GitHubClient.parse_pr_url(PR_URL) == PullRequestRef(owner="acme", repo="shop", number=17)


@pytest.mark.parametrize("url", ["", "https://gitlab.com/acme/shop/merge_requests/1", "https://github.com/acme/shop"])
def test_parse_pr_url_rejects_invalid(url):
    with pytest.raises(PayloadError):
        GitHubClient.parse_pr_url(url)


@pytest.mark.asyncio
async def test_fetch_pr_metadata():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=PR_JSON)

    metadata = await _client(handler).fetch_pr_metadata(PR_URL)

    assert seen == {"path": "/repos/acme/shop/pulls/17", "auth": "Bearer ghp_test"}
    assert metadata.title == "Add checkout"
    assert metadata.author == "dev"
    assert metadata.head_sha == "abc123"
    assert metadata.head_branch == "feature/checkout"
    assert metadata.changed_files == 4


@pytest.mark.asyncio
async def test_fetch_pr_diff_uses_diff_media_type():
    def handler(request):
        assert request.headers["accept"] == DIFF_ACCEPT
        return httpx.Response(200, text="diff --git a/x b/x\n")

    assert (await _client(handler, token=None).fetch_pr_diff(PR_URL)).startswith("diff --git")


@pytest.mark.asyncio
async def test_error_status_raises_collaborator_error():
    client = _client(lambda request: httpx.Response(404, json={"message": "Not Found"}))
    with pytest.raises(CollaboratorError) as exc_info:
        await client.fetch_pr_metadata(PR_URL)
    assert exc_info.value.details == {"status_code": 404, "path": "/repos/acme/shop/pulls/17"}
    assert exc_info.value.collaborator == "github"


@pytest.mark.asyncio
async def test_transport_failure_raises_collaborator_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CollaboratorError):
        await _client(handler).fetch_pr_diff(PR_URL)


@pytest.mark.asyncio
async def test_create_check_run():
    sent = {}

    def handler(request):
        sent["path"] = request.url.path
        sent["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 99, "html_url": "https://github.com/acme/shop/runs/99"})

    created = await _client(handler).create_check_run(
        "acme", "shop", name="QAAI Tests", head_sha="abc123", conclusion="failure", title="1 test failed", summary="..."
    )

    assert created == {"id": 99, "url": "https://github.com/acme/shop/runs/99"}
    assert sent["path"] == "/repos/acme/shop/check-runs"
    assert sent["body"]["conclusion"] == "failure"
    assert sent["body"]["output"] == {"title": "1 test failed", "summary": "..."}


@pytest.mark.asyncio
async def test_create_issue_and_token_requirement():
    def handler(request):
        body = json.loads(request.content)
        assert body["labels"] == ["qa-automated"]
        return httpx.Response(201, json={"number": 5, "html_url": "https://github.com/acme/shop/issues/5", "id": 1005})

    created = await _client(handler).create_issue("acme", "shop", "Test Failure: x", "body", ["qa-automated"])
    assert created == {"number": 5, "url": "https://github.com/acme/shop/issues/5", "id": 1005}

    with pytest.raises(CollaboratorError, match="token is required"):
        await _client(handler, token=None).create_issue("acme", "shop", "t", "b")


@pytest.mark.asyncio
async def test_search_issues_scopes_query_to_repo():
    def handler(request):
        assert request.url.path == "/search/issues"
        assert request.url.params["q"] == 'repo:acme/shop is:issue "Test Failure: x" in:title is:open'
        return httpx.Response(200, json={"total_count": 1, "items": [{"title": "Test Failure: x"}]})

    items = await _client(handler).search_issues("acme", "shop", '"Test Failure: x" in:title is:open')
    assert items == [{"title": "Test Failure: x"}]
