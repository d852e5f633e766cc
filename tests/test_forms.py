import csv
import io

from modulecms.models.form_submission import FormSubmission

VALID = {"name": "Ada", "email": "ada@example.com", "message": "Hello there"}


class TestSubmitForm:

    def test_missing_required_fields(self, client, app):
        resp = client.post("/api/v1/forms/contact/submit", json={"name": "Ada"})

        assert resp.status_code == 400
        errors = resp.get_json()["meta"]["errors"]
        assert set(errors) == {"email", "message"}

    def test_invalid_email(self, client, app):
        resp = client.post("/api/v1/forms/contact/submit", json={**VALID, "email": "not-an-email"})
        assert resp.status_code == 400
        assert "email" in resp.get_json()["meta"]["errors"]

    def test_valid_submission_is_stored(self, client, app):
        resp = client.post("/api/v1/forms/contact/submit", json={**VALID, "newsletter": "on"})

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["redirect_to"] is None
        assert body["success_message"].startswith("Thank you")
        submission = FormSubmission.query.filter_by(id=body["id"]).one()
        assert submission.payload["newsletter"] is True
        assert submission.payload["name"] == "Ada"

    def test_form_encoded_submission(self, client, app):
        resp = client.post("/api/v1/forms/contact/submit", data=VALID)
        assert resp.status_code == 201

    def test_unknown_form(self, client, app):
        assert client.post("/api/v1/forms/survey/submit", json=VALID).status_code == 404
        assert client.get("/api/v1/forms/survey").status_code == 404


class TestFormAdmin:

    def test_public_definition_has_no_subscriptions(self, client, app):
        body = client.get("/api/v1/forms/contact").get_json()
        assert "subscriptions" not in body
        assert [f["slug"] for f in body["fields"]][:2] == ["name", "email"]

    def test_list_submissions(self, client, admin_headers):
        client.post("/api/v1/forms/contact/submit", json=VALID)
        client.post("/api/v1/forms/contact/submit", json={**VALID, "name": "Grace"})

        body = client.get("/api/v1/forms/contact/submissions", headers=admin_headers).get_json()

        assert len(body["items"]) == 2

    def test_export_csv(self, client, admin_headers):
        client.post("/api/v1/forms/contact/submit", json=VALID)

        resp = client.get("/api/v1/forms/contact/submissions/export", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        rows = list(csv.reader(io.StringIO(resp.get_data(as_text=True))))
        assert rows[0][:3] == ["id", "created_at", "name"]
        assert rows[1][2] == "Ada"

    def test_editor_cannot_export(self, client, editor_headers):
        resp = client.get("/api/v1/forms/contact/submissions/export", headers=editor_headers)
        assert resp.status_code == 403
