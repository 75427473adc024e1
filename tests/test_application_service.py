"""
Tests for ApplicationService: applying, decisions, withdrawal and the content review loop.
"""

import pytest
from sqlalchemy import update

from core.errors import Conflict, Forbidden, InvalidTransition, NotEligible, ValidationError
from database.marketplace_models import (
    Application, ApplicationStatus, ContentReviewStatus, Notification,
)

MEDIA = ["https://cdn.revu.test/v/1.mp4"]


class TestApply:

    def test_apply_to_active_campaign(self, application_service, active_campaign, influencer, business, db):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id, "Pick me", 300_000)

        assert application.status == ApplicationStatus.PENDING
        assert application.agreed_price == 300_000
        assert db.query(Notification).filter(
            Notification.user_id == business.user_id,
            Notification.type == "application_received",
        ).count() == 1

    def test_agreed_price_defaults_to_budget(self, application_service, active_campaign, influencer):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        assert application.agreed_price == 1_000_000

    def test_unpaid_campaign_not_open(self, application_service, make_campaign, influencer):
        campaign = make_campaign()
        with pytest.raises(NotEligible):
            application_service.apply_to_campaign(influencer, campaign.id)

    def test_one_application_per_campaign(self, application_service, active_campaign, influencer):
        campaign = active_campaign()
        application_service.apply_to_campaign(influencer, campaign.id)
        with pytest.raises(Conflict):
            application_service.apply_to_campaign(influencer, campaign.id)

    def test_business_cannot_apply(self, application_service, active_campaign, business):
        campaign = active_campaign()
        with pytest.raises(Forbidden):
            application_service.apply_to_campaign(business, campaign.id)


class TestDecisions:

    def test_owner_approves(self, application_service, active_campaign, influencer, business, db):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)

        decided = application_service.update_application_status(business, application.id, "approved")

        assert decided.status == ApplicationStatus.APPROVED
        assert decided.decided_by == business.user_id
        assert db.query(Notification).filter(Notification.user_id == influencer.user_id).count() == 1

    def test_decided_only_once(self, application_service, active_campaign, influencer, business):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        application_service.update_application_status(business, application.id, "rejected", "Not a fit")

        with pytest.raises(InvalidTransition):
            application_service.update_application_status(business, application.id, "approved")

    def test_concurrent_decision_loses(self, application_service, active_campaign, influencer, business, db):
        """A decision committed between our read and our write wins; ours is refused."""
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)

        original_get = application_service.get_application

        def racing_get(application_id, for_update=False):
            loaded = original_get(application_id, for_update)
            db.execute(
                update(Application)
                .where(Application.id == application_id)
                .values(status=ApplicationStatus.REJECTED)
                .execution_options(synchronize_session=False)
            )
            return loaded

        application_service.get_application = racing_get
        with pytest.raises(InvalidTransition):
            application_service.update_application_status(business, application.id, "approved")

    def test_only_approve_or_reject(self, application_service, active_campaign, influencer, business):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        with pytest.raises(ValidationError):
            application_service.update_application_status(business, application.id, "completed")

    def test_other_business_forbidden(self, application_service, active_campaign, influencer, other_business):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        with pytest.raises(Forbidden):
            application_service.update_application_status(other_business, application.id, "approved")

    def test_admin_may_decide(self, application_service, active_campaign, influencer, admin):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        assert application_service.update_application_status(admin, application.id, "approved").status == ApplicationStatus.APPROVED


class TestWithdraw:

    def test_withdraw_pending(self, application_service, active_campaign, influencer):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        withdrawn = application_service.withdraw_application(influencer, application.id)
        assert withdrawn.status == ApplicationStatus.WITHDRAWN

    def test_cannot_withdraw_someone_elses(self, application_service, active_campaign, influencer, other_influencer):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        with pytest.raises(Forbidden):
            application_service.withdraw_application(other_influencer, application.id)

    def test_cannot_withdraw_after_approval(self, application_service, active_campaign, influencer, business):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        application_service.update_application_status(business, application.id, "approved")
        with pytest.raises(InvalidTransition):
            application_service.withdraw_application(influencer, application.id)


class TestContentReview:

    @pytest.fixture
    def approved_application(self, application_service, active_campaign, influencer, business):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        return application_service.update_application_status(business, application.id, "approved")

    def test_submit_requires_approved_application(self, application_service, active_campaign, influencer):
        campaign = active_campaign()
        application = application_service.apply_to_campaign(influencer, campaign.id)
        with pytest.raises(NotEligible):
            application_service.submit_content(influencer, application.id, MEDIA)

    @pytest.mark.parametrize("media", [[], ["not a url"], ["ftp://cdn.revu.test/a.mp4"], "https://cdn.revu.test/a.mp4"])
    def test_submit_validates_media(self, application_service, approved_application, influencer, media):
        with pytest.raises(ValidationError):
            application_service.submit_content(influencer, approved_application.id, media)

    def test_approval_completes_application(self, application_service, approved_application, influencer, business):
        content = application_service.submit_content(influencer, approved_application.id, MEDIA, "First cut")
        assert content.review_status == ContentReviewStatus.SUBMITTED

        reviewed = application_service.review_content(business, content.id, "approved")

        assert reviewed.review_status == ContentReviewStatus.APPROVED
        application = application_service.get_application(approved_application.id)
        assert application.status == ApplicationStatus.COMPLETED
        assert application.completed_at is not None

    def test_rejection_allows_resubmission(self, application_service, approved_application, influencer, business):
        content = application_service.submit_content(influencer, approved_application.id, MEDIA)
        application_service.review_content(business, content.id, "rejected", "Show the product")

        with pytest.raises(InvalidTransition):
            application_service.review_content(business, content.id, "approved")

        resubmitted = application_service.submit_content(influencer, approved_application.id, ["https://cdn.revu.test/v/2.mp4"])
        assert resubmitted.id == content.id
        assert resubmitted.revision_count == 1
        assert resubmitted.review_status == ContentReviewStatus.SUBMITTED
        assert application_service.get_application(approved_application.id).status == ApplicationStatus.APPROVED

    def test_cannot_submit_twice_while_in_review(self, application_service, approved_application, influencer):
        application_service.submit_content(influencer, approved_application.id, MEDIA)
        with pytest.raises(InvalidTransition):
            application_service.submit_content(influencer, approved_application.id, MEDIA)

    def test_only_campaign_owner_reviews(self, application_service, approved_application, influencer, other_business):
        content = application_service.submit_content(influencer, approved_application.id, MEDIA)
        with pytest.raises(Forbidden):
            application_service.review_content(other_business, content.id, "approved")
