"""Tests for POST /webhook/send-photo-upload-invitation."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from laarikhojo.api.factory import create_app
from laarikhojo.infra.repositories.vendors_repository import VendorProfile

from .helpers import LogRecorder, fake_txn

MODULE = "laarikhojo.api.routes.webhooks_whatsapp"
URL = "/webhook/send-photo-upload-invitation"


@pytest.fixture
def client():
    return TestClient(create_app())


@pytest.fixture
def lookup():
    with patch(f"{MODULE}.txn", fake_txn):
        with patch(f"{MODULE}.find_by_phone_variants") as find:
            yield find


@pytest.fixture
def sender():
    with patch(f"{MODULE}.meta_sender") as meta_sender:
        yield meta_sender


def test_missing_phone_returns_400(client, lookup, sender):
    response = client.post(URL, json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "msg": "Phone number is required"}
    lookup.assert_not_called()


def test_blank_phone_returns_400(client, lookup, sender):
    assert client.post(URL, json={"phoneNumber": "  "}).status_code == 400


def test_unknown_vendor_returns_404(client, lookup, sender):
    lookup.return_value = None

    response = client.post(URL, json={"phoneNumber": "9876543210"})

    assert response.status_code == 404
    assert response.json()["msg"] == "Vendor not found with this phone number"
    sender.send_photo_upload_invitation.assert_not_called()


def test_sends_template_to_canonical_phone(client, lookup, sender):
    lookup.return_value = VendorProfile(id="v1", name="Ramesh", contact_number="9876543210")

    response = client.post(URL, json={"phoneNumber": "98765 43210"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "msg": "Photo upload invitation sent successfully"}
    assert lookup.call_args[0][1] == ["98765 43210", "9876543210", "919876543210", "+919876543210"]
    sender.send_photo_upload_invitation.assert_called_once_with("919876543210")


def test_send_failure_returns_500(client, lookup, sender):
    lookup.return_value = VendorProfile(id="v1", name=None, contact_number="9876543210")
    sender.send_photo_upload_invitation.side_effect = RuntimeError("Missing Meta config")

    response = client.post(URL, json={"phoneNumber": "9876543210"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "msg": "Error sending photo upload invitation"}


def test_logs_no_phone(client, lookup, sender):
    lookup.return_value = VendorProfile(id="v1", name=None, contact_number="9876543210")
    recorder = LogRecorder()

    with patch(f"{MODULE}.logger", recorder):
        client.post(URL, json={"phoneNumber": "9876543210"})

    all_logged = recorder.get_all_logged_content()
    assert "9876543210" not in all_logged
    assert recorder.has_extra_field("phone_hash")
