"""Tests for LeadService: wiring, role-scoped reads and channel partner claims."""

import pytest

from core.exceptions import LeadNotFoundError
from core.models import LeadPriority, UserType
from core.services.lead_service import CHANNEL_PARTNER_CLAIM_FEEDBACK, LeadService
from tests.conftest import (
    BOOKED,
    NEW,
    OPEN,
    STATUS_ROWS,
    InMemoryLeadStore,
    lead_data,
)


class TestConstruction:

    def test_loads_catalog_from_store_when_not_given(self):
        service = LeadService(InMemoryLeadStore())

        assert service.catalog.initial.status_id == NEW

    def test_statuses_in_lifecycle_order(self, lead_service):
        assert [s.status_id for s in lead_service.statuses()] == [row["status_id"] for row in STATUS_ROWS]

    def test_components_share_store_and_locks(self, lead_service, store):
        assert lead_service.engine.store is store
        assert lead_service.assignment.locks is lead_service.locks
        assert lead_service.booking.engine is lead_service.engine


class TestChannelPartnerLeads:

    def test_partner_lead_is_claimed_on_creation(self, lead_service, channel_partner, store):
        lead = lead_service.create_lead(channel_partner, lead_data())

        assert [name for name, _ in store.writes] == ["create_lead", "assign_lead"]
        assign_fields = store.writes[-1][1]
        assert assign_fields["feedback"] == CHANNEL_PARTNER_CLAIM_FEEDBACK
        assert assign_fields["assigned_priority"] == "Medium"
        assert lead.assigned_priority == LeadPriority.MEDIUM

    def test_partner_lead_shows_in_partner_queue(self, lead_service, channel_partner):
        lead = lead_service.create_lead(channel_partner, lead_data())

        assert [l.lead_id for l in lead_service.list_leads(channel_partner)] == [lead.lead_id]

    def test_builder_lead_is_not_claimed(self, lead_service, builder, store):
        lead_service.create_lead(builder, lead_data())

        assert [name for name, _ in store.writes] == ["create_lead"]


class TestRoleScopedReads:

    def test_owner_sees_every_active_lead(self, lead_service, builder, assigned_lead):
        leads = lead_service.list_leads(builder)

        assert {l.lead_id for l in leads} == {assigned_lead.lead_id}

    def test_owner_filters_by_assignee(self, lead_service, builder, assigned_lead):
        other = lead_service.create_lead(builder, lead_data(customer_name="Anil Kumar"))

        mine = lead_service.list_leads(builder, assigned_user_type=int(UserType.TELECALLER), assigned_id=11)
        unassigned_too = lead_service.list_leads(builder)

        assert [l.lead_id for l in mine] == [assigned_lead.lead_id]
        assert {l.lead_id for l in unassigned_too} == {assigned_lead.lead_id, other.lead_id}

    def test_employee_sees_only_their_queue(self, lead_service, builder, telecaller, sales_manager, assigned_lead):
        lead_service.create_lead(builder, lead_data(customer_name="Anil Kumar"))

        assert [l.lead_id for l in lead_service.list_leads(telecaller)] == [assigned_lead.lead_id]
        assert lead_service.list_leads(sales_manager) == []

    def test_employee_cannot_widen_queue_with_assignee_filter(self, lead_service, sales_manager, assigned_lead):
        leads = lead_service.list_leads(sales_manager, assigned_user_type=int(UserType.TELECALLER), assigned_id=11)

        assert leads == []

    def test_partner_sees_unclaimed_referrals(self, lead_service, builder, channel_partner):
        referred = lead_service.create_lead(builder, lead_data(channel_partner_id=channel_partner.user_id))
        lead_service.create_lead(builder, lead_data(customer_name="Anil Kumar"))

        assert [l.lead_id for l in lead_service.list_leads(channel_partner)] == [referred.lead_id]

    def test_referral_leaves_partner_queue_once_assigned_elsewhere(self, lead_service, builder, channel_partner):
        referred = lead_service.create_lead(builder, lead_data(channel_partner_id=channel_partner.user_id))
        lead_service.assign(builder, referred.lead_id, int(UserType.TELECALLER), 11, "High", "Route")

        assert lead_service.list_leads(channel_partner) == []

    def test_employee_filters_still_apply(self, lead_service, telecaller, assigned_lead, today):
        lead_service.transition(telecaller, assigned_lead.lead_id, OPEN, "Interested", "Visit", action_date=today)

        assert lead_service.list_leads(telecaller, status_id=NEW) == []
        assert len(lead_service.list_leads(telecaller, status_id=OPEN)) == 1

    def test_get_lead_scoped_to_organization(self, lead_service, builder, other_builder, telecaller, new_lead):
        assert lead_service.get_lead(builder, new_lead.lead_id).lead_id == new_lead.lead_id
        assert lead_service.get_lead(telecaller, new_lead.lead_id).lead_id == new_lead.lead_id

        with pytest.raises(LeadNotFoundError):
            lead_service.get_lead(other_builder, new_lead.lead_id)

    def test_booked_status_is_listed_but_not_enterable(self, lead_service):
        assert BOOKED in [s.status_id for s in lead_service.statuses()]
