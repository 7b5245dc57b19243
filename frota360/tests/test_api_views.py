"""
View tests call the undecorated view functions so role checks are bypassed;
the acting user is swapped in through the module's current_user.
"""
import pytest

from frota360.api import driver as driver_api
from frota360.api import painel as painel_api
from frota360.api import referral as referral_api
from frota360.api import settings as settings_api
from frota360.services.referral_service import ReferralService


@pytest.fixture
def as_user(monkeypatch, dummy_user):
    def _login(module, **kwargs):
        user = dummy_user(**kwargs)
        monkeypatch.setattr(module, 'current_user', user)
        return user
    return _login


class TestDriverViews:
    def test_create_driver(self, app, db):
        with app.test_request_context('/api/drivers', method='POST',
                                      json={'name': 'Ana', 'type': 'affiliate'}):
            resp, status = driver_api.create_driver.__wrapped__()
        assert status == 201
        assert resp.get_json()['name'] == 'Ana'

    def test_create_driver_validation_error(self, app, db):
        with app.test_request_context('/api/drivers', method='POST', json={'name': 'Ana', 'type': 'taxi'}):
            resp, status = driver_api.create_driver.__wrapped__()
        assert status == 400
        assert 'type' in resp.get_json()

    def test_missing_driver(self, app, db):
        with app.test_request_context('/api/drivers/99'):
            _, status = driver_api.get_driver.__wrapped__(99)
        assert status == 404

    def test_approve_driver(self, app, db, make_driver, as_user):
        as_user(driver_api)
        driver = make_driver(status='pending')
        with app.test_request_context(f'/api/drivers/{driver.id}/approve', method='POST'):
            resp, status = driver_api.approve_driver.__wrapped__(driver.id)
        assert status == 200
        assert resp.get_json()['status'] == 'active'

        with app.test_request_context(f'/api/drivers/{driver.id}/approve', method='POST'):
            resp, status = driver_api.approve_driver.__wrapped__(driver.id)
        assert status == 400
        assert 'pending' in resp.get_json()['error']

    def test_set_exemption_requires_fields(self, app, db, make_driver, as_user):
        as_user(driver_api)
        driver = make_driver()
        with app.test_request_context(f'/api/drivers/{driver.id}/admin-fee-exemption', method='PUT',
                                      json={'weeks': 2}):
            resp, status = driver_api.set_admin_fee_exemption.__wrapped__(driver.id)
        assert status == 400
        assert 'start_date' in resp.get_json()


class TestSettingsViews:
    def test_unknown_section(self, app, db):
        with app.test_request_context('/api/settings/colors'):
            _, status = settings_api.get_settings.__wrapped__('colors')
        assert status == 404

    def test_update_referral_settings(self, app, db, as_user):
        as_user(settings_api)
        with app.test_request_context('/api/settings/referral', method='PUT',
                                      json={'bonus_amount': 70, 'minimum_weeks': 5}):
            resp, status = settings_api.update_settings.__wrapped__('referral')
        assert status == 200
        assert resp.get_json() == {'bonus_amount': 70.0, 'minimum_weeks': 5}

    def test_update_rejects_negative_values(self, app, db, as_user):
        as_user(settings_api)
        with app.test_request_context('/api/settings/referral', method='PUT', json={'bonus_amount': -1}):
            _, status = settings_api.update_settings.__wrapped__('referral')
        assert status == 400


class TestPainelViews:
    def test_driver_without_profile(self, app, db, as_user):
        as_user(painel_api, driver_id=None, roles=('driver',))
        with app.test_request_context('/api/painel/me'):
            _, status = painel_api.me.__wrapped__()
        assert status == 404

    def test_me_includes_network(self, app, db, make_driver, as_user):
        ana = make_driver(name='Ana')
        make_driver(name='Bruno', referred_by_id=ana.id)
        as_user(painel_api, driver_id=ana.id, roles=('driver',))
        with app.test_request_context('/api/painel/me'):
            resp, status = painel_api.me.__wrapped__()
        body = resp.get_json()
        assert status == 200
        assert body['name'] == 'Ana'
        assert body['network']['total_recruits'] == 1

    def test_weekly_summary_without_data(self, app, db, make_driver, as_user):
        ana = make_driver()
        as_user(painel_api, driver_id=ana.id, roles=('driver',))
        with app.test_request_context('/api/painel/weekly-summary?weekId=2025-W43'):
            resp, status = painel_api.weekly_summary.__wrapped__()
        assert status == 404
        assert resp.get_json()['week_id'] == '2025-W43'


class TestReferralViews:
    def test_driver_accepts_for_themselves(self, app, db, make_driver, as_user):
        referrer = make_driver()
        recruit = make_driver()
        other = make_driver()
        invite = ReferralService.create_invite(referrer.id)
        # A driver passing someone else's id still acts on their own profile
        as_user(referral_api, driver_id=recruit.id, roles=('driver',))
        with app.test_request_context('/api/referrals/accept', method='POST',
                                      json={'invite_code': invite.invite_code, 'driver_id': other.id}):
            resp, status = referral_api.accept_invite.__wrapped__()
        assert status == 200
        assert resp.get_json()['accepted_by_driver_id'] == recruit.id
        assert other.referred_by_id is None

    def test_unknown_code(self, app, db, make_driver, as_user):
        recruit = make_driver()
        as_user(referral_api, driver_id=recruit.id, roles=('driver',))
        with app.test_request_context('/api/referrals/accept', method='POST',
                                      json={'invite_code': 'CONDUZ-0001-ABC-DEF'}):
            _, status = referral_api.accept_invite.__wrapped__()
        assert status == 404


class TestAppRoutes:
    def test_health_check(self, app, db):
        resp = app.test_client().get('/api/health-check')
        assert resp.status_code == 200
        assert resp.get_json()['database'] == 'connected'

    def test_protected_endpoint_requires_login(self, app, db):
        resp = app.test_client().get('/api/drivers', headers={'Accept': 'application/json'})
        assert resp.status_code in (401, 403)

    def test_unknown_route_is_json(self, app, db):
        resp = app.test_client().get('/api/nothing-here')
        assert resp.status_code == 404
        assert 'error' in resp.get_json()
