"""
Bearer token verification.
"""
from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from core.auth import get_current_patient_id
from core.config import settings
from core.security import create_access_token, decode_access_token, get_patient_id_from_token


def _credentials(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:
    def test_round_trip_subject(self):
        token = create_access_token({"sub": "patient-1"})
        assert get_patient_id_from_token(token) == "patient-1"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "patient-1"}, expires_delta=timedelta(minutes=-1))
        assert decode_access_token(token) is None

    def test_audience_enforced_when_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "JWT_AUDIENCE", "authenticated")

        wrong_audience = create_access_token({"sub": "patient-1", "aud": "service_role"})
        assert decode_access_token(wrong_audience) is None
        assert decode_access_token(create_access_token({"sub": "patient-1"}))["aud"] == "authenticated"


class TestCurrentPatient:
    def test_valid(self):
        token = create_access_token({"sub": "patient-9"})
        assert get_current_patient_id(_credentials(token)) == "patient-9"

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc:
            get_current_patient_id(None)
        assert exc.value.status_code == 401

    def test_missing_subject(self):
        token = create_access_token({"role": "authenticated"})
        with pytest.raises(HTTPException) as exc:
            get_current_patient_id(_credentials(token))
        assert exc.value.status_code == 401

