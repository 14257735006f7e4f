"""Procurement analytics routes: dashboard, pipeline, aging, trends."""

from typing import List

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.db.session import DbSession
from app.schemas.analytics import (
    DashboardSummary,
    PaymentAging,
    Period,
    PipelineStage,
    RecentDocument,
    RevenueMonth,
    TopProduct,
)
from app.services.procurement_analytics_service import ProcurementAnalyticsService

router = APIRouter()


@router.get("/dashboard-summary", response_model=DashboardSummary)
@limiter.limit("30/minute")
def get_dashboard_summary(request: Request, db: DbSession, seller: CurrentSeller, period: Period = "30d"):
    """Counts and values across PIs, POs, invoices and payments for a period."""
    return ProcurementAnalyticsService.dashboard_summary(db, seller.id, period)


@router.get("/pi-pipeline", response_model=List[PipelineStage])
@limiter.limit("30/minute")
def get_pi_pipeline(request: Request, db: DbSession, seller: CurrentSeller):
    return ProcurementAnalyticsService.pi_pipeline(db, seller.id)


@router.get("/payment-aging", response_model=PaymentAging)
@limiter.limit("30/minute")
def get_payment_aging(request: Request, db: DbSession, seller: CurrentSeller):
    """Outstanding invoice balances bucketed by days past due."""
    return ProcurementAnalyticsService.payment_aging(db, seller.id)


@router.get("/revenue-trend", response_model=List[RevenueMonth])
@limiter.limit("30/minute")
def get_revenue_trend(
    request: Request, db: DbSession, seller: CurrentSeller, months: int = Query(6, ge=1, le=24)
):
    return ProcurementAnalyticsService.revenue_trend(db, seller.id, months)


@router.get("/top-products", response_model=List[TopProduct])
@limiter.limit("30/minute")
def get_top_products(
    request: Request, db: DbSession, seller: CurrentSeller, limit: int = Query(5, ge=1, le=20)
):
    return ProcurementAnalyticsService.top_products(db, seller.id, limit)


@router.get("/recent-pis", response_model=List[RecentDocument])
@limiter.limit("30/minute")
def get_recent_pis(
    request: Request, db: DbSession, seller: CurrentSeller, limit: int = Query(5, ge=1, le=50)
):
    return ProcurementAnalyticsService.recent_pis(db, seller.id, limit)


@router.get("/recent-pos", response_model=List[RecentDocument])
@limiter.limit("30/minute")
def get_recent_pos(
    request: Request, db: DbSession, seller: CurrentSeller, limit: int = Query(5, ge=1, le=50)
):
    return ProcurementAnalyticsService.recent_pos(db, seller.id, limit)
