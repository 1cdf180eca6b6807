"""
Service dependencies for the route layer.

Each request gets services bound to its own DB session; tests override
get_db and get_payment_gateway.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from sportmatch.core.auth_dependency import get_db
from sportmatch.core.gating import EntitlementGate
from sportmatch.services.interaction_service import InteractionLedger
from sportmatch.services.match_service import MatchStore
from sportmatch.services.profile_directory import ProfileDirectory
from sportmatch.services.stripe_service import PaymentGateway, StripeGateway
from sportmatch.services.subscription_service import SubscriptionLedger


def get_payment_gateway() -> PaymentGateway:
    return StripeGateway()


def get_profile_directory(db: Session = Depends(get_db)) -> ProfileDirectory:
    return ProfileDirectory(db)


def get_entitlement_gate(db: Session = Depends(get_db)) -> EntitlementGate:
    return EntitlementGate(db)


def get_match_store(
    db: Session = Depends(get_db),
    directory: ProfileDirectory = Depends(get_profile_directory),
) -> MatchStore:
    return MatchStore(db, directory)


def get_interaction_ledger(
    db: Session = Depends(get_db),
    directory: ProfileDirectory = Depends(get_profile_directory),
    gate: EntitlementGate = Depends(get_entitlement_gate),
    matches: MatchStore = Depends(get_match_store),
) -> InteractionLedger:
    return InteractionLedger(db, directory=directory, gate=gate, matches=matches)


def get_subscription_ledger(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> SubscriptionLedger:
    return SubscriptionLedger(db, gateway=gateway)
