from unittest.mock import MagicMock, patch

import pytest
import requests

from modulecms.application.agents.run_agent import extract_json, normalize_suggestions
from modulecms.extensions import db
from modulecms.models.agent_execution import AgentExecution
from modulecms.services.agent_registry import agent_registry
from modulecms.services.module_resolution import resolve_props

SEO_URL = "https://seo.example.com/hook"


@pytest.fixture
def seo_agent(monkeypatch, app):
    monkeypatch.setitem(agent_registry.get("seo-webhook")["external"], "url", SEO_URL)
    return agent_registry.get("seo-webhook")


class TestReplyParsing:

    def test_extract_fenced_json(self):
        reply = 'Here you go:\n```json\n{"summary": "ok"}\n```'
        assert extract_json(reply) == {"summary": "ok"}

    def test_extract_rejects_prose(self):
        assert extract_json("no json here") is None

    def test_top_level_fields_are_wrapped(self):
        data = normalize_suggestions({"metaTitle": "Better", "modules": [{"props": {}}, {"type": "hero"}]})
        assert data["post"] == {"metaTitle": "Better"}
        assert data["modules"] == [{"type": "hero"}]


class TestAgentListing:

    def test_dropdown_agents_are_ordered(self, client, admin_headers):
        body = client.get("/api/v1/agents?scope=dropdown", headers=admin_headers).get_json()
        assert [a["id"] for a in body] == ["content-enhancer", "seo-webhook", "translator"]

    def test_listing_hides_secrets(self, client, admin_headers):
        body = client.get("/api/v1/agents", headers=admin_headers).get_json()
        assert all("external" not in a and "internal" not in a for a in body)


class TestExternalAgent:

    @patch("modulecms.application.agents.run_agent.requests.post")
    def test_suggestions_land_in_review_draft(self, mock_post, client, admin_headers, make_post, seo_agent):
        post = make_post()
        mock_post.return_value = MagicMock(ok=True, status_code=200)
        mock_post.return_value.json.return_value = {
            "post": {"metaTitle": "About our team", "metaDescription": "Who we are"},
            "summary": "Improved meta tags",
        }

        resp = client.post(f"/api/v1/posts/{post.id}/agents/seo-webhook/run", json={}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["summary"] == "Improved meta tags"
        args, kwargs = mock_post.call_args
        assert args[0] == SEO_URL
        db.session.refresh(post)
        assert post.review_draft == {"meta_title": "About our team", "meta_description": "Who we are"}
        assert post.meta_title is None
        assert AgentExecution.query.filter_by(post_id=post.id, success=True).count() == 1

    @patch("modulecms.application.agents.run_agent.requests.post")
    def test_timeout_is_reported_and_recorded(self, mock_post, client, admin_headers, make_post, seo_agent):
        post = make_post()
        mock_post.side_effect = requests.Timeout("slow")

        resp = client.post(f"/api/v1/posts/{post.id}/agents/seo-webhook/run", json={}, headers=admin_headers)

        assert resp.status_code == 408
        execution = AgentExecution.query.filter_by(post_id=post.id).one()
        assert execution.success is False
        assert execution.error == "Agent request timed out"

    @patch("modulecms.application.agents.run_agent.requests.post")
    def test_non_ok_response(self, mock_post, client, admin_headers, make_post, seo_agent):
        post = make_post()
        mock_post.return_value = MagicMock(ok=False, status_code=500, text="boom")

        resp = client.post(f"/api/v1/posts/{post.id}/agents/seo-webhook/run", json={}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.get_json()["meta"]["status_code"] == 500

    def test_missing_webhook_url(self, client, admin_headers, make_post, monkeypatch):
        monkeypatch.setitem(agent_registry.get("seo-webhook")["external"], "url", "")
        post = make_post()

        resp = client.post(f"/api/v1/posts/{post.id}/agents/seo-webhook/run", json={}, headers=admin_headers)

        assert resp.status_code == 400


class TestInternalAgent:

    @patch("modulecms.services.ai_provider_service.complete")
    def test_module_suggestions_go_to_ai_review(self, mock_complete, client, admin_headers, make_post):
        post = make_post()
        mock_complete.return_value = {
            "content": '```json\n{"summary": "Sharper hero", "post": {"excerpt": "We build things"},'
                       ' "modules": [{"type": "hero", "props": {"subtitle": "Since 1999"}}]}\n```',
            "usage": {"input_tokens": 10, "output_tokens": 20},
        }

        resp = client.post(
            f"/api/v1/posts/{post.id}/agents/content-enhancer/run",
            json={"open_ended_context": "Make it punchy"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert set(resp.get_json()["applied"]) == {"post.excerpt", "module.hero"}
        messages = mock_complete.call_args.kwargs["messages"]
        assert "Make it punchy" in messages[1]["content"]

        db.session.refresh(post)
        assert post.ai_review_draft["excerpt"] == "We build things"
        hero = post.post_modules[0]
        assert resolve_props(hero, "ai-review")["subtitle"] == "Since 1999"
        assert resolve_props(hero, "publish")["subtitle"] == ""

    def test_open_ended_context_length_is_capped(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(
            f"/api/v1/posts/{post.id}/agents/content-enhancer/run",
            json={"open_ended_context": "x" * 801},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_agent(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(f"/api/v1/posts/{post.id}/agents/nope/run", json={}, headers=admin_headers)
        assert resp.status_code == 404

    def test_translator_role_cannot_run_agents(self, client, auth_headers, make_post):
        post = make_post()
        resp = client.post(
            f"/api/v1/posts/{post.id}/agents/content-enhancer/run",
            json={},
            headers=auth_headers("translator"),
        )
        assert resp.status_code == 403
