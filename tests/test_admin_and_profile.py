"""
Tests for profile setup, the admin gate and admin provisioning
"""
import pytest

from app import auth_flow, bootstrap, crud, models
from app.core.exceptions import ConflictError, ValidationError
from app.core.security import verify_password


class TestProfileSetup:

    def test_setup_profile(self, client, student, auth_headers):
        response = client.post('/api/user/setup-profile', headers=auth_headers, json={
            'degreeProgram': 'BSCS',
            'subjects': ['CS101', 'MTH101'],
        })

        assert response.status_code == 200
        user = response.json()['user']
        assert user['degreeProgram'] == 'BSCS'
        assert user['subjects'] == ['CS101', 'MTH101']

    def test_requires_subjects(self, client, auth_headers):
        response = client.post('/api/user/setup-profile', headers=auth_headers, json={
            'degreeProgram': 'BSCS',
            'subjects': [],
        })

        assert response.status_code == 400
        assert response.json() == {'message': 'Degree program and at least one subject are required'}

    def test_requires_authentication(self, client):
        response = client.post('/api/user/setup-profile', json={
            'degreeProgram': 'BSCS',
            'subjects': ['CS101'],
        })

        assert response.status_code == 401


class TestAdminUsers:

    def test_admin_lists_users(self, client, student, admin_user, admin_auth_headers):
        response = client.get('/api/admin/users', headers=admin_auth_headers)

        assert response.status_code == 200
        emails = {u['email'] for u in response.json()}
        assert emails == {student.email, admin_user.email}
        assert all('password' not in u for u in response.json())

    def test_student_is_forbidden(self, client, auth_headers):
        response = client.get('/api/admin/users', headers=auth_headers)

        assert response.status_code == 403
        assert response.json() == {'message': 'Admin access required'}

    def test_anonymous_is_unauthorized(self, client):
        assert client.get('/api/admin/users').status_code == 401


class TestProvisionAdmin:

    def test_creates_verified_admin(self, db):
        user, created = auth_flow.provision_admin(db, 'root@portal.org', 'rootpassword1')

        assert created is True
        assert user.role == models.ROLE_ADMIN
        assert user.is_verified is True
        assert verify_password('rootpassword1', user.password)

    def test_is_idempotent(self, db):
        first, _ = auth_flow.provision_admin(db, 'root@portal.org', 'rootpassword1')
        second, created = auth_flow.provision_admin(db, 'root@portal.org', 'another-password')

        assert created is False
        assert second.id == first.id
        assert db.query(models.User).count() == 1
        assert verify_password('rootpassword1', second.password)

    def test_mixed_case_email_can_log_in(self, db, client):
        user, created = auth_flow.provision_admin(db, 'Root@Portal.ORG', 'rootpassword1')

        assert created is True
        assert user.email == 'Root@portal.org'

        response = client.post('/api/auth/login', json={'email': 'Root@Portal.ORG', 'password': 'rootpassword1'})

        assert response.status_code == 200
        assert response.json()['user']['role'] == 'admin'

    def test_mixed_case_rerun_finds_existing_admin(self, db):
        first, _ = auth_flow.provision_admin(db, 'root@portal.org', 'rootpassword1')
        second, created = auth_flow.provision_admin(db, 'root@PORTAL.org', 'rootpassword1')

        assert created is False
        assert second.id == first.id

    def test_invalid_email(self, db):
        with pytest.raises(ValidationError):
            auth_flow.provision_admin(db, 'not-an-email', 'rootpassword1')
        assert db.query(models.User).count() == 0

    def test_username_clash(self, db, user_factory):
        user_factory('someone@vu.edu.pk', username='admin')

        with pytest.raises(ConflictError):
            auth_flow.provision_admin(db, 'root@portal.org', 'rootpassword1')
        assert crud.get_user_by_email(db, 'root@portal.org') is None

    def test_bootstrap_command(self, db, monkeypatch):
        monkeypatch.setattr(bootstrap.settings, 'ADMIN_EMAIL', 'root@portal.org')
        monkeypatch.setattr(bootstrap.settings, 'ADMIN_PASSWORD', 'rootpassword1')

        assert bootstrap.main() == 0
        assert bootstrap.main() == 0
        assert db.query(models.User).filter_by(role=models.ROLE_ADMIN).count() == 1

    def test_bootstrap_without_credentials(self, monkeypatch):
        monkeypatch.setattr(bootstrap.settings, 'ADMIN_EMAIL', None)

        assert bootstrap.main() == 1
