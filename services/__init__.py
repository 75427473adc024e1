# Services Module for Revu Platform
# Lifecycle services: each takes the request's Session and runs one unit of work per operation

from services.notification_service import NotificationService, NotificationType, get_notification_service
from services.revenue_service import RevenueService
from services.campaign_service import CampaignService
from services.application_service import ApplicationService
from services.payment_service import PaymentService
from services.settlement_service import SettlementService

__all__ = [
    'NotificationService',
    'NotificationType',
    'get_notification_service',
    'RevenueService',
    'CampaignService',
    'ApplicationService',
    'PaymentService',
    'SettlementService',
]
