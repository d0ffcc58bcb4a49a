"""
反馈服务 - 住后评价与投诉
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from hrs.models.entities import (
    Review, Complaint, ComplaintStatus, ComplaintPriority, Booking, User
)

logger = logging.getLogger(__name__)


class FeedbackService:
    """评价与投诉服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 评价 ==============

    def submit_review(self, customer: User, rating: int, comment: Optional[str] = None,
                      booking_id: Optional[int] = None, category: Optional[str] = None) -> Review:
        """提交评价；未指定预订时关联客户最近一次预订"""
        if rating is None or not 1 <= rating <= 5:
            raise ValueError("评分必须在 1 到 5 之间")

        if booking_id:
            booking = self.db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.customer_id == customer.id
            ).first()
            if not booking:
                raise ValueError("预订不存在")
        else:
            booking = self.db.query(Booking).filter(
                Booking.customer_id == customer.id
            ).order_by(Booking.created_at.desc(), Booking.id.desc()).first()
            if not booking:
                raise ValueError("没有可关联的预订")

        review = Review(
            booking_id=booking.id,
            customer_id=customer.id,
            rating=rating,
            comment=comment,
            category=category,
        )
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"Review {review.id} submitted for booking {booking.id}, rating {rating}")
        return review

    def customer_feedback(self) -> Dict:
        """经理查看评价：明细 + 平均分 + 数量"""
        reviews = self.db.query(Review).order_by(Review.created_at.desc(), Review.id.desc()).all()
        average = self.db.query(func.avg(Review.rating)).scalar()
        items = []
        for r in reviews:
            room = r.booking.room if r.booking else None
            items.append({
                "id": r.id,
                "booking_id": r.booking_id,
                "customer_name": r.customer.full_name if r.customer else None,
                "room_number": room.room_number if room else None,
                "room_type_name": room.room_type.type_name if room and room.room_type else None,
                "rating": r.rating,
                "comment": r.comment,
                "category": r.category,
                "created_at": r.created_at,
            })
        return {
            "reviews": items,
            "average_rating": round(float(average), 2) if average is not None else 0.0,
            "total_reviews": len(items),
        }

    # ============== 投诉 ==============

    def submit_complaint(
        self,
        customer: User,
        subject: str,
        description: str,
        category: Optional[str] = None,
        priority: ComplaintPriority = ComplaintPriority.MEDIUM,
        booking_id: Optional[int] = None,
    ) -> Complaint:
        if not subject or not subject.strip():
            raise ValueError("主题不能为空")
        if not description or not description.strip():
            raise ValueError("描述不能为空")
        if booking_id and not self.db.query(Booking).filter(
            Booking.id == booking_id, Booking.customer_id == customer.id
        ).first():
            raise ValueError("预订不存在")

        complaint = Complaint(
            customer_id=customer.id,
            booking_id=booking_id,
            category=category,
            subject=subject.strip(),
            description=description.strip(),
            priority=priority or ComplaintPriority.MEDIUM,
            status=ComplaintStatus.OPEN,
        )
        self.db.add(complaint)
        self.db.commit()
        self.db.refresh(complaint)
        logger.info(f"Complaint {complaint.id} submitted by customer {customer.id}")
        return complaint

    def list_complaints(self, status: Optional[ComplaintStatus] = None,
                        customer_id: Optional[int] = None) -> List[Complaint]:
        q = self.db.query(Complaint)
        if status:
            q = q.filter(Complaint.status == status)
        if customer_id:
            q = q.filter(Complaint.customer_id == customer_id)
        return q.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()

    def update_complaint(self, complaint_id: int, status: Optional[ComplaintStatus] = None,
                         assigned_to: Optional[int] = None,
                         resolution: Optional[str] = None) -> Optional[Complaint]:
        complaint = self.db.query(Complaint).filter(Complaint.id == complaint_id).first()
        if not complaint:
            return None
        if assigned_to is not None:
            if not self.db.query(User).filter(User.id == assigned_to).first():
                raise ValueError("指派的员工不存在")
            complaint.assigned_to = assigned_to
        if resolution is not None:
            complaint.resolution = resolution
        if status is not None:
            complaint.status = status
            if status in (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED):
                complaint.resolved_at = complaint.resolved_at or datetime.now()
            else:
                complaint.resolved_at = None
        self.db.commit()
        self.db.refresh(complaint)
        return complaint

    @staticmethod
    def complaint_to_dict(c: Complaint) -> Dict:
        return {
            "id": c.id,
            "customer_id": c.customer_id,
            "customer_name": c.customer.full_name if c.customer else None,
            "booking_id": c.booking_id,
            "category": c.category,
            "subject": c.subject,
            "description": c.description,
            "status": c.status,
            "priority": c.priority,
            "assigned_to": c.assigned_to,
            "assignee_name": c.assignee.full_name if c.assignee else None,
            "resolution": c.resolution,
            "created_at": c.created_at,
            "resolved_at": c.resolved_at,
        }
