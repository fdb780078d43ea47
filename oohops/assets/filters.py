import django_filters
from .models import MediaAsset
from .search import search_assets


class MediaAssetFilter(django_filters.FilterSet):
    """Filters for the media asset list"""
    search = django_filters.CharFilter(method='filter_search')
    city = django_filters.CharFilter(field_name='city', lookup_expr='iexact')
    area = django_filters.CharFilter(field_name='area', lookup_expr='icontains')
    media_type = django_filters.CharFilter(field_name='media_type', lookup_expr='iexact')
    status = django_filters.CharFilter(field_name='status')
    illumination_type = django_filters.CharFilter(field_name='illumination_type')
    min_card_rate = django_filters.NumberFilter(field_name='card_rate', lookup_expr='gte')
    max_card_rate = django_filters.NumberFilter(field_name='card_rate', lookup_expr='lte')
    has_duplicates = django_filters.BooleanFilter(field_name='duplicate_group_id', lookup_expr='isnull', exclude=True)

    class Meta:
        model = MediaAsset
        fields = ['search', 'city', 'area', 'media_type', 'status', 'illumination_type']

    def filter_search(self, queryset, name, value):
        return search_assets(queryset, value)
