# FILE: backend/ecopromise/services/__init__.py
# Service registry.

from . import (
    ai_service,
    analytics_service,
    challenge_service,
    commitment_service,
    flag_service,
    gamification_service,
    notification_service,
    organization_service,
    report_service,
    user_service,
)
