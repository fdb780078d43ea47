import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404

from oohops.core.codes import generate_asset_code
from oohops.core.roles import ASSET_EDITORS, OPERATIONS_ROLES
from oohops.core.tenancy import get_membership, require_role
from oohops.core.utils import create_audit_log
from .duplicates import find_potential_duplicates, detect_duplicate_groups
from .filters import MediaAssetFilter
from .importer import import_assets
from .models import MediaAsset
from .qr import generate_asset_qr
from .serializers import MediaAssetSerializer, MediaAssetListSerializer, DuplicateCheckSerializer

logger = logging.getLogger(__name__)

RATE_FIELDS = ('card_rate', 'base_rate', 'printing_rate_default', 'mounting_rate_default')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def media_asset_list_create(request):
    """List media assets with filters or create a new asset"""
    membership = get_membership(request)
    company = membership.company

    if request.method == 'GET':
        queryset = MediaAsset.objects.filter(company=company)
        asset_filter = MediaAssetFilter(request.query_params, queryset=queryset)
        if not asset_filter.is_valid():
            return Response(asset_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = MediaAssetListSerializer(asset_filter.qs, many=True)
        return Response(serializer.data)

    require_role(membership, ASSET_EDITORS)
    serializer = MediaAssetSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            code = generate_asset_code(company, serializer.validated_data['city'], serializer.validated_data['media_type'])
            asset = serializer.save(company=company, media_asset_code=code, created_by=request.user)
        create_audit_log(request=request, action='create', model_name='MediaAsset', object_id=asset.pk,
                         object_name=asset.media_asset_code, company=company)
        return Response(MediaAssetSerializer(asset).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def media_asset_detail(request, pk):
    """Retrieve, update or delete a media asset"""
    membership = get_membership(request)
    asset = get_object_or_404(MediaAsset, pk=pk, company=membership.company)

    if request.method == 'GET':
        return Response(MediaAssetSerializer(asset).data)

    require_role(membership, ASSET_EDITORS)
    if request.method in ('PUT', 'PATCH'):
        before = {f: str(getattr(asset, f)) for f in RATE_FIELDS}
        serializer = MediaAssetSerializer(asset, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            asset = serializer.save()
            after = {f: str(getattr(asset, f)) for f in RATE_FIELDS}
            action = 'rate_change' if before != after else 'update'
            create_audit_log(request=request, action=action, model_name='MediaAsset', object_id=asset.pk,
                             object_name=asset.media_asset_code,
                             changes={'before': before, 'after': after} if action == 'rate_change' else request.data,
                             company=membership.company)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    require_role(membership, ['admin'])
    if asset.campaign_assets.exclude(campaign__status__in=['Completed', 'Cancelled', 'Archived']).exists():
        return Response({'error': 'Asset has active bookings and cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='delete', model_name='MediaAsset', object_id=asset.pk,
                     object_name=asset.media_asset_code, company=membership.company)
    asset.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def media_asset_bookings(request, pk):
    """Campaign bookings that hold this asset"""
    from oohops.campaigns.serializers import AssetBookingSerializer

    membership = get_membership(request)
    asset = get_object_or_404(MediaAsset, pk=pk, company=membership.company)
    bookings = asset.campaign_assets.select_related('campaign', 'campaign__client').order_by('-booking_start_date')
    return Response(AssetBookingSerializer(bookings, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def media_asset_generate_qr(request, pk):
    membership = require_role(get_membership(request), ASSET_EDITORS)
    asset = get_object_or_404(MediaAsset, pk=pk, company=membership.company)
    try:
        url = generate_asset_qr(asset)
    except Exception as e:
        logger.error(f"QR generation failed for asset {asset.pk}: {str(e)}")
        return Response({'error': 'Failed to generate QR code'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({
        'media_asset_code': asset.media_asset_code,
        'target_url': url,
        'qr_code_url': asset.qr_code.url if asset.qr_code else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def media_asset_check_duplicate(request):
    """Check whether a new or edited asset duplicates an existing one"""
    membership = get_membership(request)
    serializer = DuplicateCheckSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    matches = find_potential_duplicates(
        membership.company, data['city'], data['location'], data['media_type'],
        latitude=data.get('latitude'), longitude=data.get('longitude'), exclude_id=data.get('exclude_id'),
    )
    return Response({
        'has_duplicates': bool(matches),
        'duplicates': [
            dict(MediaAssetListSerializer(m['asset']).data, reasons=m['reasons']) for m in matches
        ],
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def media_asset_duplicates(request):
    """GET lists stored duplicate groups; POST re-runs detection"""
    membership = get_membership(request)
    company = membership.company

    if request.method == 'POST':
        require_role(membership, ASSET_EDITORS)
        detect_duplicate_groups(company)

    groups = {}
    for asset in MediaAsset.objects.filter(company=company, duplicate_group_id__isnull=False).order_by('duplicate_group_id', 'pk'):
        groups.setdefault(asset.duplicate_group_id, []).append(MediaAssetListSerializer(asset).data)
    return Response({
        'group_count': len(groups),
        'groups': [{'duplicate_group_id': gid, 'assets': assets} for gid, assets in groups.items()],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def media_asset_bulk_import(request):
    membership = require_role(get_membership(request), ASSET_EDITORS)
    upload = request.FILES.get('file')
    if not upload:
        return Response({'error': 'An Excel file is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        created, errors = import_assets(upload, membership.company, user=request.user)
    except Exception as e:
        logger.error(f"Asset import failed for company {membership.company.pk}: {str(e)}")
        return Response({'error': f'Could not read workbook: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='create', model_name='MediaAsset', object_id='bulk',
                     object_name=f'{len(created)} assets imported', changes={'rejected_rows': len(errors)},
                     company=membership.company)
    return Response({
        'created_count': len(created),
        'created': [a.media_asset_code for a in created],
        'errors': errors,
    }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def media_asset_unbook(request, pk):
    """Manually release an asset that is stuck in Booked"""
    from oohops.campaigns.services import release_asset

    membership = require_role(get_membership(request), OPERATIONS_ROLES)
    asset = get_object_or_404(MediaAsset, pk=pk, company=membership.company)
    if asset.status != 'Booked':
        return Response({'error': 'Asset is not booked'}, status=status.HTTP_400_BAD_REQUEST)
    released = release_asset(asset, force=request.data.get('force', False) in (True, 'true', '1'))
    if not released:
        return Response({'error': 'Asset is still held by an active campaign. Pass force=true to override.'},
                        status=status.HTTP_409_CONFLICT)
    create_audit_log(request=request, action='asset_release', model_name='MediaAsset', object_id=asset.pk,
                     object_name=asset.media_asset_code, company=membership.company)
    asset.refresh_from_db()
    return Response(MediaAssetSerializer(asset).data)
