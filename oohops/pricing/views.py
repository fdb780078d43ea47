from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from .calculator import (
    PricingError, compute_rent_amount, compute_pro_rata_factor, calculate_duration_days,
    calculate_discount, calculate_profit, validate_negotiated_price, duration_factor,
)
from .serializers import RentPreviewSerializer, RateValidationSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def rent_preview(request):
    """Rent for one asset over a date range in the chosen billing mode"""
    serializer = RentPreviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        result = compute_rent_amount(
            data['monthly_rate'], data['start_date'], data['end_date'],
            data['billing_mode'], data.get('daily_rate'),
        )
    except PricingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    payload = result.as_dict()
    payload['pro_rata_factor'] = compute_pro_rata_factor(result.booked_days)
    payload['duration_days'] = calculate_duration_days(data['start_date'], data['end_date'])
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def validate_rate(request):
    """Check a negotiated price against base and card rates, with discount and profit"""
    serializer = RateValidationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    factor = Decimal('1')
    if data.get('start_date') and data.get('end_date'):
        factor = duration_factor(calculate_duration_days(data['start_date'], data['end_date']))

    discount_value, discount_percent = calculate_discount(data['card_rate'], data['negotiated_rate'], factor)
    profit_value, profit_percent = calculate_profit(data['base_rate'], data['negotiated_rate'], factor)
    payload = {
        'is_valid': True,
        'error': None,
        'discount_value': discount_value,
        'discount_percent': discount_percent,
        'profit_value': profit_value,
        'profit_percent': profit_percent,
    }
    try:
        validate_negotiated_price(data['negotiated_rate'], data['base_rate'], data['card_rate'])
    except PricingError as e:
        payload['is_valid'] = False
        payload['error'] = str(e)
    return Response(payload)
