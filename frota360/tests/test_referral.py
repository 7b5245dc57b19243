from datetime import datetime, timedelta

import pytest

from frota360.models.referral_invite import ReferralInvite
from frota360.services.errors import ServiceError, NotFoundError
from frota360.services.referral_service import (
    ReferralService,
    generate_invite_code,
    is_valid_invite_code,
    to_base36,
)


def test_base36():
    assert to_base36(0) == '0'
    assert to_base36(35) == 'z'
    assert to_base36(36) == '10'


def test_generated_codes_are_valid_and_unique():
    codes = {generate_invite_code(12) for _ in range(20)}
    assert len(codes) == 20
    for code in codes:
        assert code.startswith('CONDUZ-0012-')
        assert is_valid_invite_code(code)
    assert not is_valid_invite_code('conduz-0012-abc-def')
    assert not is_valid_invite_code('')


class TestInvites:
    def test_accept_links_recruit(self, db, make_driver):
        referrer = make_driver()
        recruit = make_driver(status='pending')
        invite = ReferralService.create_invite(referrer.id, email='novo@conduz.pt')

        accepted = ReferralService.accept_invite(invite.invite_code.lower(), recruit.id)
        assert accepted.status == 'accepted'
        assert accepted.accepted_by_driver_id == recruit.id
        assert recruit.referred_by_id == referrer.id
        assert recruit.recruited_at is not None

        with pytest.raises(ServiceError):
            ReferralService.accept_invite(invite.invite_code, recruit.id)

    def test_inactive_driver_cannot_invite(self, db, make_driver):
        referrer = make_driver(status='pending')
        with pytest.raises(ServiceError):
            ReferralService.create_invite(referrer.id)

    def test_unknown_referrer(self, db):
        with pytest.raises(NotFoundError):
            ReferralService.create_invite(404)

    def test_self_referral_is_rejected(self, db, make_driver):
        referrer = make_driver()
        invite = ReferralService.create_invite(referrer.id)
        with pytest.raises(ServiceError, match='themselves'):
            ReferralService.accept_invite(invite.invite_code, referrer.id)

    def test_cycle_is_rejected(self, db, make_driver):
        top = make_driver()
        middle = make_driver(referred_by_id=top.id)
        invite = ReferralService.create_invite(middle.id)
        # top is already above middle, linking it below would close the loop
        with pytest.raises(ServiceError):
            ReferralService.accept_invite(invite.invite_code, top.id)
        assert top.referred_by_id is None

    def test_expired_invite(self, db, make_driver):
        referrer = make_driver()
        recruit = make_driver()
        invite = ReferralService.create_invite(referrer.id)
        invite.expires_at = datetime.utcnow() - timedelta(days=1)
        db.session.commit()

        with pytest.raises(ServiceError, match='expired'):
            ReferralService.accept_invite(invite.invite_code, recruit.id)
        assert db.session.get(ReferralInvite, invite.id).status == 'expired'

    def test_list_invites_by_status(self, db, make_driver):
        referrer = make_driver()
        recruit = make_driver()
        first = ReferralService.create_invite(referrer.id)
        ReferralService.create_invite(referrer.id)
        ReferralService.accept_invite(first.invite_code, recruit.id)

        assert len(ReferralService.list_invites(referrer.id)) == 2
        assert [i.id for i in ReferralService.list_invites(referrer.id, 'accepted')] == [first.id]


def test_affiliate_network(db, make_driver):
    referrer = make_driver(name='Ana')
    make_driver(name='Bruno', referred_by_id=referrer.id)
    make_driver(name='Carla', referred_by_id=referrer.id, status='inactive')

    network = ReferralService.get_affiliate_network(referrer.id)
    assert network['total_recruits'] == 2
    assert network['active_recruits'] == 1
    assert [r['name'] for r in network['recruits']] == ['Bruno', 'Carla']

    with pytest.raises(NotFoundError):
        ReferralService.get_affiliate_network(999)
