"""HTTP tests for the JSON API using Litestar's TestClient."""

from uuid import uuid4

import pytest
from litestar.testing import TestClient

from factories import ACTOR_ID
from vellum.asgi import create_app
from vellum.config import DatabaseConfig, Settings

ACTOR = {"X-Actor-Id": str(ACTOR_ID)}


@pytest.fixture
def client(tmp_path):
    settings = Settings(db=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", create_all=True))
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def project_id(client):
    response = client.post("/api/projects", json={"name": "Handbook"})
    assert response.status_code == 201
    return response.json()["id"]


def _page(client, project_id, title, **fields):
    response = client.post(
        f"/api/projects/{project_id}/pages",
        json={"title": title, "is_published": True, **fields},
        headers=ACTOR,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _version(client, project_id, number=None, **fields):
    body = {**fields}
    if number is not None:
        body["version_number"] = number
    response = client.post(f"/api/projects/{project_id}/versions", json=body, headers=ACTOR)
    assert response.status_code == 201, response.text
    return response.json()


class TestProjects:
    def test_create_and_list(self, client, project_id):
        """Test that a created project is listed and fetchable."""
        projects = client.get("/api/projects").json()
        assert [p["slug"] for p in projects] == ["handbook"]
        assert client.get(f"/api/projects/{project_id}").json()["name"] == "Handbook"

    def test_duplicate_slug_conflicts(self, client, project_id):
        """Test that a second project with the same slug is a 409."""
        response = client.post("/api/projects", json={"name": "Handbook"})
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_unknown_project(self, client):
        """Test that an unknown project id is a 404 with an error code."""
        response = client.get(f"/api/projects/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestPages:
    def test_create_records_actor(self, client, project_id):
        """Test that the X-Actor-Id header is recorded on new pages."""
        page = _page(client, project_id, "Getting Started")
        assert page["slug"] == "getting-started"
        assert page["created_by"] == str(ACTOR_ID)

    def test_invalid_actor_header(self, client, project_id):
        """Test that a malformed X-Actor-Id header is a 400."""
        response = client.post(
            f"/api/projects/{project_id}/pages",
            json={"title": "Page"},
            headers={"X-Actor-Id": "not-a-uuid"},
        )
        assert response.status_code == 400

    def test_tree_and_path(self, client, project_id):
        """Test the tree endpoint and lookup by slug path."""
        guide = _page(client, project_id, "Guide")
        _page(client, project_id, "Install", parent_page_id=guide["id"])

        tree = client.get(f"/api/projects/{project_id}/tree").json()
        assert tree[0]["children"][0]["path"] == "/guide/install"

        found = client.get(f"/api/projects/{project_id}/pages/by-path/guide/install").json()
        assert found["title"] == "Install"

    def test_list_children(self, client, project_id):
        """Test listing all pages and filtering by parent."""
        guide = _page(client, project_id, "Guide")
        _page(client, project_id, "Install", parent_page_id=guide["id"])

        everything = client.get(f"/api/projects/{project_id}/pages").json()
        children = client.get(
            f"/api/projects/{project_id}/pages", params={"parent_page_id": guide["id"]}
        ).json()

        assert len(everything) == 2
        assert [p["title"] for p in children] == ["Install"]

    def test_partial_update(self, client, project_id):
        """Test that PATCH only changes the fields sent."""
        page = _page(client, project_id, "Guide", description="Keep me")

        response = client.patch(f"/api/pages/{page['id']}", json={"title": "Handbook guide"}, headers=ACTOR)

        assert response.status_code == 200
        assert response.json()["title"] == "Handbook guide"
        assert response.json()["description"] == "Keep me"

    def test_null_title_is_rejected(self, client, project_id):
        """Test that an explicit null title is a 400."""
        page = _page(client, project_id, "Guide")
        response = client.patch(f"/api/pages/{page['id']}", json={"title": None}, headers=ACTOR)
        assert response.status_code == 400

    def test_move_into_descendant_is_conflict(self, client, project_id):
        """Test that moving a page under its own child is a 409 cycle error."""
        root = _page(client, project_id, "Root")
        child = _page(client, project_id, "Child", parent_page_id=root["id"])

        response = client.post(
            f"/api/pages/{root['id']}/move", json={"new_parent_id": child["id"]}, headers=ACTOR
        )

        assert response.status_code == 409
        assert response.json()["error"] == "cycle"

    def test_duplicate(self, client, project_id):
        """Test that a duplicate is unpublished and gets a suffixed slug."""
        page = _page(client, project_id, "Guide")
        response = client.post(f"/api/pages/{page['id']}/duplicate", json={}, headers=ACTOR)
        assert response.status_code == 201
        assert response.json()["slug"] == "guide-copy"
        assert response.json()["is_published"] is False

    def test_delete_modes(self, client, project_id):
        """Test the block, invalid and cascade delete modes."""
        root = _page(client, project_id, "Root")
        _page(client, project_id, "Child", parent_page_id=root["id"])

        assert client.delete(f"/api/pages/{root['id']}").status_code == 409
        assert client.delete(f"/api/pages/{root['id']}", params={"mode": "bogus"}).status_code == 400

        response = client.delete(f"/api/pages/{root['id']}", params={"mode": "cascade"})
        assert response.status_code == 200
        assert len(response.json()["deleted"]) == 2

    def test_subpages_and_blocks(self, client, project_id):
        """Test creating a sub-page, reading its navigation and removing its block."""
        parent = _page(client, project_id, "Parent")

        created = client.post(
            f"/api/pages/{parent['id']}/subpages", json={"title": "Child", "display_mode": "inline"}, headers=ACTOR
        ).json()
        (block_id,) = created["parent"]["content"]["blocks"]
        assert created["parent"]["has_subpage_blocks"] is True

        nav = client.get(f"/api/pages/{created['page']['id']}/navigation").json()
        assert [b["title"] for b in nav["breadcrumbs"]] == ["Parent", "Child"]

        response = client.delete(f"/api/pages/{parent['id']}/blocks/{block_id}", headers=ACTOR)
        assert response.json()["content"]["blocks"] == {}

    def test_unknown_display_mode(self, client, project_id):
        """Test that an unknown display mode is a 400."""
        parent = _page(client, project_id, "Parent")
        response = client.post(
            f"/api/pages/{parent['id']}/subpages", json={"title": "Child", "display_mode": "popup"}
        )
        assert response.status_code == 400


class TestVersions:
    def test_lifecycle(self, client, project_id):
        """Test creating, publishing, comparing and listing the history of versions."""
        page = _page(client, project_id, "Guide")
        v1 = _version(client, project_id, "1.0.0", version_name="First")
        assert v1["is_draft"] is True

        published = client.post(f"/api/versions/{v1['id']}/publish").json()
        assert published["is_current"] is True
        assert client.get(f"/api/projects/{project_id}/versions/current").json()["id"] == v1["id"]

        client.patch(f"/api/pages/{page['id']}", json={"title": "Guide 2"}, headers=ACTOR)
        v2 = _version(client, project_id)
        assert v2["version_number"] == "1.1.0"

        comparison = client.get(f"/api/versions/compare/{v1['id']}/{v2['id']}").json()
        assert comparison["summary"] == {"pages_added": 0, "pages_modified": 1, "pages_removed": 0}
        assert comparison["modified_pages"][0]["title_changed"] is True

        diff = client.get(f"/api/versions/compare/{v1['id']}/{v2['id']}/pages/{page['id']}").json()
        assert diff["title"] == {"old": "Guide", "new": "Guide 2"}

        history = client.get(f"/api/projects/{project_id}/versions/history").json()
        assert [entry["version"]["version_number"] for entry in history] == ["1.1.0"]

    def test_duplicate_number(self, client, project_id):
        """Test that reusing a version number is a 409."""
        _version(client, project_id, "1.0.0")
        response = client.post(f"/api/projects/{project_id}/versions", json={"version_number": "1.0.0"})
        assert response.status_code == 409

    def test_bad_number(self, client, project_id):
        """Test that a malformed version number is a 400."""
        response = client.post(f"/api/projects/{project_id}/versions", json={"version_number": "1.0"})
        assert response.status_code == 400

    def test_suggest(self, client, project_id):
        """Test the suggest endpoint with and without a bump."""
        url = f"/api/projects/{project_id}/versions/suggest"
        assert client.get(url).json() == {"version_number": "1.0.0"}
        _version(client, project_id, "1.2.3")
        assert client.get(url, params={"bump": "patch"}).json() == {"version_number": "1.2.4"}
        assert client.get(url, params={"bump": "huge"}).status_code == 400

    def test_delete_rules(self, client, project_id):
        """Test that drafts can be deleted and published versions cannot."""
        draft = _version(client, project_id, "1.0.0")
        released = _version(client, project_id, "2.0.0")
        client.post(f"/api/versions/{released['id']}/publish")

        assert client.delete(f"/api/versions/{released['id']}").status_code == 409
        assert client.delete(f"/api/versions/{draft['id']}").status_code == 204
        assert client.get(f"/api/versions/{draft['id']}").status_code == 404

    def test_archive_and_list(self, client, project_id):
        """Test archiving, listing archived versions and unarchiving."""
        version = _version(client, project_id, "1.0.0")
        client.post(f"/api/versions/{version['id']}/archive")

        assert client.get(f"/api/projects/{project_id}/versions").json() == []
        archived = client.get(f"/api/projects/{project_id}/versions", params={"include_archived": True}).json()
        assert archived[0]["is_archived"] is True

        assert client.patch(f"/api/versions/{version['id']}", json={"version_name": "X"}).status_code == 409
        client.post(f"/api/versions/{version['id']}/unarchive")
        assert client.patch(f"/api/versions/{version['id']}", json={"version_name": "X"}).json()["version_name"] == "X"

    def test_snapshots_and_stats(self, client, project_id):
        """Test the snapshot listing and stats endpoints."""
        page = _page(client, project_id, "Guide")
        _page(client, project_id, "Draft", is_published=False)
        version = _version(client, project_id, "1.0.0")

        pages = client.get(f"/api/versions/{version['id']}/pages").json()
        assert [p["title"] for p in pages] == ["Guide"]
        assert client.get(f"/api/versions/{version['id']}/pages/{page['id']}").json()["page_id"] == page["id"]

        stats = client.get(f"/api/versions/{version['id']}/stats").json()
        assert stats["pages_count"] == 1
        assert stats["published_pages_count"] == 1

    def test_restore(self, client, project_id):
        """Test comparing with live pages and restoring through the API."""
        page = _page(client, project_id, "Guide")
        version = _version(client, project_id, "1.0.0")
        client.patch(f"/api/pages/{page['id']}", json={"title": "Oops"}, headers=ACTOR)

        live = client.get(f"/api/versions/{version['id']}/compare-live").json()
        assert live["summary"]["pages_modified"] == 1

        result = client.post(f"/api/versions/{version['id']}/restore", headers=ACTOR).json()
        assert result == {"restored_pages_count": 1, "updated_pages": [page["id"]], "errors": []}
        assert client.get(f"/api/pages/{page['id']}").json()["title"] == "Guide"


class TestPublic:
    def test_reads_current_snapshot(self, client, project_id):
        """Test that public reads serve the current version, not live edits."""
        guide = _page(client, project_id, "Guide", description="All about setup")
        _page(client, project_id, "Install", parent_page_id=guide["id"])
        version = _version(client, project_id, "1.0.0")

        assert client.get(f"/public/projects/{project_id}/tree").status_code == 404

        client.post(f"/api/versions/{version['id']}/publish")
        client.patch(f"/api/pages/{guide['id']}", json={"title": "Unreleased"}, headers=ACTOR)

        tree = client.get(f"/public/projects/{project_id}/tree").json()
        assert tree["version"]["version_number"] == "1.0.0"
        assert tree["tree"][0]["title"] == "Guide"

        page = client.get(f"/public/projects/{project_id}/pages/guide/install").json()
        assert page["page"]["title"] == "Install"
        assert [b["title"] for b in page["navigation"]["breadcrumbs"]] == ["Guide", "Install"]

        hits = client.get("/public/search", params={"q": "setup"}).json()
        assert [(h["title"], h["matched_in"]) for h in hits] == [("Guide", "description")]

    def test_draft_version_is_hidden(self, client, project_id):
        """Test that a draft version is not publicly readable."""
        _page(client, project_id, "Guide")
        _version(client, project_id, "1.0.0")
        response = client.get(f"/public/projects/{project_id}/tree", params={"version": "1.0.0"})
        assert response.status_code == 404
