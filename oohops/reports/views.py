import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils import timezone

from oohops.assets.serializers import MediaAssetListSerializer
from oohops.campaigns.availability import get_media_availability
from oohops.core.cache_utils import (
    get_cached_dashboard_kpis, cache_dashboard_kpis, DASHBOARD_KPI_CACHE_TTL,
)
from oohops.core.exports import file_response, XLSX_CONTENT_TYPE, PPTX_CONTENT_TYPE
from oohops.core.roles import FINANCE_ROLES, PLAN_EDITORS
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log, parse_date_param
from oohops.finance.services import aging_report
from .exports import build_vacant_media_workbook, build_vacant_media_deck
from .services import build_dashboard_kpis, revenue_report as build_revenue_report, client_summary as build_client_summary

logger = logging.getLogger('oohops.reports')

UNSELLABLE_STATUSES = ('Blocked', 'Maintenance', 'Expired')


def _date_range(request, default_days=30):
    today = timezone.localdate()
    date_from = parse_date_param(request.query_params.get('date_from'), today - timedelta(days=default_days))
    date_to = parse_date_param(request.query_params.get('date_to'), today)
    return date_from, date_to


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Role dashboard KPIs, cached per company, role and date range"""
    membership = get_membership(request)
    company = membership.company
    today = timezone.localdate()
    date_from = parse_date_param(request.query_params.get('date_from'), today.replace(day=1))
    date_to = parse_date_param(request.query_params.get('date_to'), today)
    own_tasks = membership.role in ('installation', 'monitoring', 'monitor')
    cache_role = f'{membership.role}:{request.user.pk}' if own_tasks else membership.role

    cache_key = None
    try:
        cached_data, cache_key = get_cached_dashboard_kpis(company.pk, cache_role, date_from, date_to)
        if cached_data:
            logger.info(f"Dashboard KPIs cache HIT (company: {company.pk}, role: {membership.role})")
            response = Response(cached_data)
            response['X-Cache'] = 'HIT'
            return response
    except Exception as e:
        logger.warning(f"Cache unavailable, proceeding without cache: {e}")

    data = build_dashboard_kpis(company, membership.role, date_from, date_to, user=request.user)

    if cache_key:
        try:
            cache_dashboard_kpis(cache_key, data, DASHBOARD_KPI_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Unable to cache response: {e}")

    response = Response(data)
    response['X-Cache'] = 'MISS'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def revenue_report(request):
    membership = require_role(get_membership(request), FINANCE_ROLES)
    date_from, date_to = _date_range(request, default_days=365)
    if date_to < date_from:
        return Response({'error': 'date_to cannot be before date_from'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(build_revenue_report(membership.company, date_from, date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def outstanding_report(request):
    """Outstanding balances by aging bucket and client"""
    membership = require_role(get_membership(request), FINANCE_ROLES)
    as_of = parse_date_param(request.query_params.get('as_of'), timezone.localdate())
    return Response(aging_report(membership.company, today=as_of))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_summary(request):
    membership = require_role(get_membership(request), FINANCE_ROLES + ['sales'])
    date_from = parse_date_param(request.query_params.get('date_from'))
    date_to = parse_date_param(request.query_params.get('date_to'))
    return Response({'clients': build_client_summary(membership.company, date_from, date_to)})


def _vacant_assets(request, company):
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    if start_date is None or end_date is None or end_date < start_date:
        return None, None, None
    result = get_media_availability(
        company, start_date, end_date,
        city=request.query_params.get('city'),
        media_type=request.query_params.get('media_type'),
    )
    assets = [a for a in result['available'] if a.status not in UNSELLABLE_STATUSES]
    return assets, start_date, end_date


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vacant_media(request):
    """Assets free for the whole requested range"""
    membership = require_role(get_membership(request), PLAN_EDITORS + ['operations'])
    assets, start_date, end_date = _vacant_assets(request, membership.company)
    if assets is None:
        return Response({'error': 'start_date and end_date (YYYY-MM-DD) are required'},
                        status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'start_date': start_date,
        'end_date': end_date,
        'count': len(assets),
        'assets': MediaAssetListSerializer(assets, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vacant_media_export(request, fmt):
    membership = require_role(get_membership(request), PLAN_EDITORS + ['operations'])
    assets, start_date, end_date = _vacant_assets(request, membership.company)
    if assets is None:
        return Response({'error': 'start_date and end_date (YYYY-MM-DD) are required'},
                        status=status.HTTP_400_BAD_REQUEST)
    filename = f'vacant-media-{start_date:%Y%m%d}-{end_date:%Y%m%d}'
    try:
        if fmt == 'excel':
            response = file_response(build_vacant_media_workbook(assets, start_date, end_date),
                                     f'{filename}.xlsx', XLSX_CONTENT_TYPE)
        elif fmt == 'ppt':
            response = file_response(build_vacant_media_deck(assets, start_date, end_date, membership.company),
                                     f'{filename}.pptx', PPTX_CONTENT_TYPE)
        else:
            return Response({'error': 'Unknown export format'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Vacant media {fmt} export failed for company {membership.company.pk}: {str(e)}")
        return Response({'error': f'Failed to generate {fmt} export'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='export', model_name='MediaAsset',
                     object_name=f'Vacant media {fmt}', changes={'count': len(assets)}, company=membership.company)
    return response
