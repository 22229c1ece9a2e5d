"""
Unit tests for JWT access tokens and tenant context resolution.
"""

import pytest
from datetime import timedelta
from fastapi import HTTPException

from auth.dependencies import UserContext, build_tenant_context
from services.jwt_service import JWTService, TokenPayload


def _payload(**overrides):
    data = {
        'sub': "12",
        'email': "terry@example.com",
        'role': "staff",
        'clinic_id': 3,
        'name': "Terry Therapist",
    }
    data.update(overrides)
    return TokenPayload(**data)


class TestJWTService:

    def test_round_trip(self):
        token = JWTService.create_access_token(_payload())

        payload = JWTService.verify_token(token)

        assert payload is not None
        assert payload.sub == "12"
        assert payload.clinic_id == 3
        assert payload.exp > payload.iat

    def test_expired_token(self):
        token = JWTService.create_access_token(_payload(), expires_delta=timedelta(seconds=-5))
        assert JWTService.verify_token(token) is None

    def test_tampered_token(self):
        token = JWTService.create_access_token(_payload())
        assert JWTService.verify_token(token[:-2] + "xx") is None

    def test_system_admin_has_no_clinic(self):
        token = JWTService.create_access_token(_payload(role="system_admin", clinic_id=None))
        assert JWTService.verify_token(token).clinic_id is None


class TestBuildTenantContext:

    def test_staff_is_pinned_to_own_clinic(self):
        user = UserContext(user_id=1, email="a@b.c", role="staff", clinic_id=3, name="A")

        tenant = build_tenant_context(user, target_clinic_id=9)

        assert tenant.clinic_id == 3
        assert not tenant.bypass_tenant_filter
        assert tenant.owns(3)
        assert not tenant.owns(9)

    def test_system_admin_targeting_clinic(self):
        admin = UserContext(user_id=1, email="a@b.c", role="system_admin", clinic_id=None, name="A")

        tenant = build_tenant_context(admin, target_clinic_id=9)

        assert tenant.clinic_id == 9
        assert tenant.is_impersonating
        assert not tenant.owns(3)

    def test_system_admin_without_target_bypasses(self):
        admin = UserContext(user_id=1, email="a@b.c", role="system_admin", clinic_id=None, name="A")

        tenant = build_tenant_context(admin)

        assert tenant.bypass_tenant_filter
        assert tenant.owns(3)

    def test_user_without_clinic_is_rejected(self):
        orphan = UserContext(user_id=1, email="a@b.c", role="staff", clinic_id=None, name="A")

        with pytest.raises(HTTPException) as exc_info:
            build_tenant_context(orphan)
        assert exc_info.value.status_code == 403
