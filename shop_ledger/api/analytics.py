"""
Analytics and report export endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from .auth import ShopSystem, get_current_identity, get_shop_system
from ..analytics import ReportPeriod, parse_report_bound
from ..records import to_storable
from ..reporting import ReportFormat, export_report


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("/sales-overview")
async def get_sales_overview(
    period: ReportPeriod = Query(ReportPeriod.MONTHLY),
    system: ShopSystem = Depends(get_shop_system)
):
    """Revenue buckets, top products and per-client totals"""
    return to_storable(system.analytics.sales_overview(period))


@router.get("/top-products")
async def get_top_products(
    limit: int = Query(10, ge=1, le=100),
    system: ShopSystem = Depends(get_shop_system)
):
    return to_storable(system.analytics.top_selling_products(limit))


@router.get("/client-stats")
async def get_client_stats(system: ShopSystem = Depends(get_shop_system)):
    return to_storable(system.analytics.client_statistics())


@router.get("/financial-reports")
async def get_financial_report(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    system: ShopSystem = Depends(get_shop_system)
):
    """
    Revenue over an inclusive window.

    Bounds accept ISO datetimes or bare dates; a bare end date covers
    the whole day. Loan figures are current balances, not windowed.
    """
    start = parse_report_bound(start_date)
    end = parse_report_bound(end_date, end_of_day=True)
    return to_storable(system.analytics.financial_report(start, end))


@router.get("/inventory")
async def get_inventory_report(system: ShopSystem = Depends(get_shop_system)):
    return to_storable(system.analytics.inventory_report())


@router.get("/export-report")
async def get_export_report(
    type: str = Query("sales", description="sales, inventory or financial"),
    format: str = Query("json", description="json or csv"),
    period: ReportPeriod = Query(ReportPeriod.MONTHLY),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    system: ShopSystem = Depends(get_shop_system)
):
    exported = export_report(
        system.analytics,
        type,
        format,
        period=period,
        start=parse_report_bound(start_date),
        end=parse_report_bound(end_date, end_of_day=True),
    )
    headers = {"Content-Disposition": f'attachment; filename="{exported.filename}"'}
    if exported.format == ReportFormat.CSV:
        return Response(content=exported.content, media_type=exported.media_type, headers=headers)
    return JSONResponse(content=exported.content, headers=headers)
