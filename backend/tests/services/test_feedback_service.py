"""
评价与投诉测试
"""
import pytest
from datetime import date, timedelta

from hrs.models.entities import ComplaintStatus, ComplaintPriority
from hrs.services.feedback_service import FeedbackService


@pytest.fixture
def feedback_service(db_session):
    return FeedbackService(db_session)


class TestReviews:

    def test_review_links_latest_booking(self, feedback_service, customer, make_booking):
        make_booking(check_in=date.today() - timedelta(days=10))
        latest = make_booking(check_in=date.today() + timedelta(days=10))
        review = feedback_service.submit_review(customer, 5, "Lovely stay")
        assert review.booking_id == latest.id

    def test_review_explicit_booking_must_be_own(self, feedback_service, make_user, make_booking):
        booking = make_booking()
        with pytest.raises(ValueError, match="预订不存在"):
            feedback_service.submit_review(make_user(), 4, booking_id=booking.id)

    def test_review_without_bookings(self, feedback_service, customer):
        with pytest.raises(ValueError, match="没有可关联的预订"):
            feedback_service.submit_review(customer, 4)

    def test_rating_range(self, feedback_service, customer, make_booking):
        make_booking()
        with pytest.raises(ValueError, match="1 到 5"):
            feedback_service.submit_review(customer, 6)

    def test_customer_feedback_summary(self, feedback_service, customer, make_booking):
        make_booking()
        feedback_service.submit_review(customer, 5)
        feedback_service.submit_review(customer, 2, category="cleanliness")

        summary = feedback_service.customer_feedback()
        assert summary["total_reviews"] == 2
        assert summary["average_rating"] == 3.5
        assert summary["reviews"][0]["room_number"] == "101"

    def test_empty_feedback_summary(self, feedback_service):
        assert feedback_service.customer_feedback() == {
            "reviews": [], "average_rating": 0.0, "total_reviews": 0
        }


class TestComplaints:

    def test_submit_and_list(self, feedback_service, customer):
        complaint = feedback_service.submit_complaint(
            customer, "Noisy room", "Construction noise at 7am", priority=ComplaintPriority.HIGH
        )
        assert complaint.status == ComplaintStatus.OPEN
        assert feedback_service.list_complaints(ComplaintStatus.OPEN)[0].id == complaint.id
        assert feedback_service.list_complaints(ComplaintStatus.RESOLVED) == []

    def test_subject_required(self, feedback_service, customer):
        with pytest.raises(ValueError, match="主题不能为空"):
            feedback_service.submit_complaint(customer, " ", "details")

    def test_resolve_sets_timestamp(self, feedback_service, customer, receptionist):
        complaint = feedback_service.submit_complaint(customer, "AC broken", "Room is hot")
        updated = feedback_service.update_complaint(
            complaint.id, ComplaintStatus.RESOLVED, assigned_to=receptionist.id, resolution="Fixed"
        )
        assert updated.resolved_at is not None
        data = FeedbackService.complaint_to_dict(updated)
        assert data["assignee_name"] == receptionist.full_name

        reopened = feedback_service.update_complaint(complaint.id, ComplaintStatus.IN_PROGRESS)
        assert reopened.resolved_at is None

    def test_assign_unknown_staff(self, feedback_service, customer):
        complaint = feedback_service.submit_complaint(customer, "Late towels", "Still waiting")
        with pytest.raises(ValueError, match="指派的员工不存在"):
            feedback_service.update_complaint(complaint.id, assigned_to=999)

    def test_update_missing(self, feedback_service):
        assert feedback_service.update_complaint(999, ComplaintStatus.CLOSED) is None
