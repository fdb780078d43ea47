"""Search tokens for media assets"""
import re

TOKEN_FIELDS = [
    'media_asset_code', 'city', 'area', 'location', 'district', 'state',
    'media_type', 'direction', 'illumination_type',
]

_SPLIT = re.compile(r'[^0-9a-z]+')


def tokenize(text):
    if not text:
        return []
    return [t for t in _SPLIT.split(str(text).lower()) if len(t) >= 2]


def build_search_tokens(asset):
    """
    Lower-cased tokens from the descriptive fields of an asset, in field
    order and without duplicates. The asset code is also indexed with its
    separators removed so "hydbqs0001" matches "HYD-BQS-0001".
    """
    tokens = []
    seen = set()

    def add(token):
        if token and token not in seen:
            seen.add(token)
            tokens.append(token)

    for field in TOKEN_FIELDS:
        for token in tokenize(getattr(asset, field, '')):
            add(token)

    code = getattr(asset, 'media_asset_code', '') or ''
    compact = re.sub(r'[^0-9a-z]', '', code.lower())
    if len(compact) >= 2:
        add(compact)
    return tokens


def search_assets(queryset, query):
    """Filter a MediaAsset queryset so every query token appears in its search text"""
    for token in tokenize(query):
        queryset = queryset.filter(search_text__icontains=token)
    return queryset
