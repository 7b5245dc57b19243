from datetime import date, datetime, timedelta

import pytest

from frota360.api import contracts as contracts_api
from frota360.api import requests as requests_api
from frota360.models.contract_template import ContractTemplate
from frota360.models.driver import Driver
from frota360.models.referral_invite import ReferralInvite
from frota360.services.contract_service import ContractTemplateService
from frota360.services.driver_request_service import DriverRequestService
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.referral_service import ReferralService


def request_data(**overrides):
    data = {
        'full_name': 'Carla Mendes',
        'birth_date': '1990-04-12',
        'email': 'carla@conduz.pt',
        'phone': '912345678',
        'city': 'Lisboa',
        'nif': '123456789',
        'type': 'renter',
        'vehicle': {'make': 'Toyota', 'model': 'Corolla', 'year': 2021, 'plate': 'CC-22-DD'},
    }
    data.update(overrides)
    return data


class TestContractTemplates:
    def test_new_version_replaces_active_one(self, db):
        v1 = ContractTemplateService.create({'type': 'affiliate', 'version': '1.0', 'file_name': 'afiliado_v1.pdf'}, user_id=1)
        v2 = ContractTemplateService.create({'type': 'affiliate', 'version': '2.0', 'file_name': 'afiliado_v2.pdf'}, user_id=1)
        renter = ContractTemplateService.create({'type': 'renter', 'version': '1.0', 'file_name': 'locatario.pdf'})

        db.session.refresh(v1)
        assert v1.is_active is False
        assert ContractTemplateService.get_active('affiliate').id == v2.id
        assert ContractTemplateService.get_active('renter').id == renter.id
        assert [t.version for t in ContractTemplateService.get_all('affiliate')] == ['2.0', '1.0']
        assert len(ContractTemplateService.get_all(active_only=True)) == 2

    def test_duplicate_version_rejected(self, db):
        ContractTemplateService.create({'type': 'renter', 'version': '1.0', 'file_name': 'a.pdf'})
        with pytest.raises(ServiceError):
            ContractTemplateService.create({'type': 'renter', 'version': '1.0', 'file_name': 'b.pdf'})

    def test_reactivating_old_version(self, db):
        v1 = ContractTemplateService.create({'type': 'renter', 'version': '1', 'file_name': 'a.pdf'})
        v2 = ContractTemplateService.create({'type': 'renter', 'version': '2', 'file_name': 'b.pdf'})
        ContractTemplateService.update(v1.id, {'is_active': True})
        db.session.refresh(v2)
        assert v2.is_active is False
        assert ContractTemplateService.get_active('renter').id == v1.id

    def test_no_active_template(self, db):
        with pytest.raises(NotFoundError):
            ContractTemplateService.get_active('affiliate')
        with pytest.raises(ServiceError):
            ContractTemplateService.get_active('taxi')

    def test_delete(self, db):
        template = ContractTemplateService.create({'type': 'renter', 'version': '1', 'file_name': 'a.pdf'})
        assert ContractTemplateService.delete(template.id) is True
        assert ContractTemplateService.delete(template.id) is False
        assert ContractTemplate.query.count() == 0


class TestContractViews:
    def test_create_and_fetch_active(self, app, db, monkeypatch, dummy_user):
        monkeypatch.setattr(contracts_api, 'current_user', dummy_user())
        with app.test_request_context('/api/contract-templates', method='POST',
                                      json={'type': 'affiliate', 'version': '1.0', 'file_name': 'afiliado.pdf'}):
            resp, status = contracts_api.create_contract_template.__wrapped__()
        assert status == 201
        assert resp.get_json()['is_active'] is True

        with app.test_request_context('/api/contract-templates/active/affiliate'):
            resp, status = contracts_api.get_active_contract_template.__wrapped__('affiliate')
        assert status == 200
        assert resp.get_json()['file_name'] == 'afiliado.pdf'

        with app.test_request_context('/api/contract-templates/active/renter'):
            _, status = contracts_api.get_active_contract_template.__wrapped__('renter')
        assert status == 404

    def test_invalid_type(self, app, db):
        with app.test_request_context('/api/contract-templates', method='POST',
                                      json={'type': 'taxi', 'version': '1', 'file_name': 'x.pdf'}):
            resp, status = contracts_api.create_contract_template.__wrapped__()
        assert status == 400
        assert 'type' in resp.get_json()


class TestDriverRequests:
    def test_create_without_invite(self, db):
        driver_request = DriverRequestService.create(request_data())
        assert driver_request.status == 'pending'
        assert driver_request.birth_date == date(1990, 4, 12)
        assert driver_request.referrer_id is None

    def test_create_with_invite_stores_referrer(self, db, make_driver):
        ana = make_driver(name='Ana')
        invite = ReferralService.create_invite(ana.id)
        driver_request = DriverRequestService.create(request_data(referral_invite_code=invite.invite_code.lower()))
        assert driver_request.referral_invite_code == invite.invite_code
        assert driver_request.referrer_id == ana.id

    def test_create_with_bad_invite(self, db, make_driver):
        with pytest.raises(ServiceError):
            DriverRequestService.create(request_data(referral_invite_code='CONDUZ-XXXX'))
        ana = make_driver()
        invite = ReferralService.create_invite(ana.id)
        invite.expires_at = datetime.utcnow() - timedelta(days=1)
        db.session.commit()
        with pytest.raises(ServiceError):
            DriverRequestService.create(request_data(referral_invite_code=invite.invite_code))

    def test_approve_creates_driver_and_links_referral(self, db, make_driver):
        ana = make_driver(name='Ana')
        invite = ReferralService.create_invite(ana.id)
        driver_request = DriverRequestService.create(request_data(referral_invite_code=invite.invite_code))

        approved = DriverRequestService.approve(driver_request.id, user_id=1, admin_notes='ok')
        assert approved.status == 'approved'
        assert approved.reviewed_by == 1
        assert approved.reviewed_at is not None

        driver = db.session.get(Driver, approved.driver_id)
        assert driver.name == 'Carla Mendes'
        assert driver.type == 'renter'
        assert driver.status == 'active'
        assert driver.vehicle_plate == 'CC-22-DD'
        assert driver.referred_by_id == ana.id
        assert db.session.get(ReferralInvite, invite.id).status == 'accepted'

    def test_approve_links_referrer_when_invite_expired_meanwhile(self, db, make_driver):
        ana = make_driver(name='Ana')
        invite = ReferralService.create_invite(ana.id)
        driver_request = DriverRequestService.create(request_data(referral_invite_code=invite.invite_code))
        invite.expires_at = datetime.utcnow() - timedelta(days=1)
        db.session.commit()

        approved = DriverRequestService.approve(driver_request.id)
        driver = db.session.get(Driver, approved.driver_id)
        assert driver.referred_by_id == ana.id
        assert driver.recruited_at is not None

    def test_review_only_once(self, db):
        driver_request = DriverRequestService.create(request_data())
        rejected = DriverRequestService.reject(driver_request.id, admin_notes='documentos em falta')
        assert rejected.status == 'rejected'
        with pytest.raises(ServiceError):
            DriverRequestService.approve(driver_request.id)
        with pytest.raises(NotFoundError):
            DriverRequestService.reject(999)
        assert Driver.query.count() == 0


class TestDriverRequestViews:
    def test_public_create(self, app, db):
        with app.test_request_context('/api/requests', method='POST', json=request_data()):
            resp, status = requests_api.create_driver_request.__wrapped__()
        assert status == 201
        assert resp.get_json()['message'] == 'Request received'

    def test_public_create_validation(self, app, db):
        with app.test_request_context('/api/requests', method='POST', json=request_data(nif='12', type='taxi')):
            resp, status = requests_api.create_driver_request.__wrapped__()
        assert status == 400
        assert set(resp.get_json()) == {'nif', 'type'}

    def test_admin_list_and_approve(self, app, db, monkeypatch, dummy_user):
        monkeypatch.setattr(requests_api, 'current_user', dummy_user())
        driver_request = DriverRequestService.create(request_data())

        with app.test_request_context('/api/admin/requests?status=pending'):
            resp, status = requests_api.list_driver_requests.__wrapped__()
        assert status == 200
        assert [r['id'] for r in resp.get_json()] == [driver_request.id]

        with app.test_request_context(f'/api/admin/requests/{driver_request.id}/approve', method='POST',
                                      json={'admin_notes': 'ok'}):
            resp, status = requests_api.approve_driver_request.__wrapped__(driver_request.id)
        assert status == 200
        assert resp.get_json()['status'] == 'approved'

        with app.test_request_context(f'/api/admin/requests/{driver_request.id}/reject', method='POST'):
            _, status = requests_api.reject_driver_request.__wrapped__(driver_request.id)
        assert status == 400

    def test_admin_list_bad_status(self, app, db):
        with app.test_request_context('/api/admin/requests?status=open'):
            _, status = requests_api.list_driver_requests.__wrapped__()
        assert status == 400
