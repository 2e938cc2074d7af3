"""
FIREDESK Referrals Module
Destination eligibility, the referral engine and the immutable referral log.
"""
from .models import Referral, ReferralDataType, Direction, ReferralRepository
from .eligibility import (
    StationLoad, check_referral_eligibility, count_load, station_load,
    evaluate_station, eligible_destinations,
)
from .engine import refer_incident, refer_alert
from .routes import register_referral_routes

__all__ = [
    "Referral",
    "ReferralDataType",
    "Direction",
    "ReferralRepository",
    "StationLoad",
    "check_referral_eligibility",
    "count_load",
    "station_load",
    "evaluate_station",
    "eligible_destinations",
    "refer_incident",
    "refer_alert",
    "register_referral_routes",
]
