"""
Dimension string parsing for media assets.

Single face:  "20x10", "20 x 10", "20X10", "20×10"
Multi-face:   "25X5 - 12X3", "40x20-30x10", "25x5 – 12x3"
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

FACE_SEPARATOR = re.compile(r'\s*[-–—]\s*')
FACE_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+(?:\.\d+)?)')
MULTI_FACE_HINT = re.compile(r'\d\s*[-–—]\s*\d')
TIMES = re.compile(r'\s*[xX×]\s*')


def _num(value):
    """Render a Decimal without trailing zeros ("20", "12.5")"""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), 'f')


def parse_dimensions(dimensions):
    """
    Parse a dimension string into faces.

    Returns a list of dicts with 'width', 'height' and 'sqft' (Decimals).
    Pieces without a digit, or faces with a non-positive side, are dropped.
    """
    if not dimensions:
        return []
    cleaned = dimensions.strip()
    faces = []
    for piece in FACE_SEPARATOR.split(cleaned):
        if not piece.strip() or not re.search(r'\d', piece):
            continue
        match = FACE_PATTERN.search(piece)
        if not match:
            continue
        try:
            width = Decimal(match.group(1))
            height = Decimal(match.group(2))
        except InvalidOperation:
            continue
        if width > 0 and height > 0:
            faces.append({
                'width': width,
                'height': height,
                'sqft': (width * height).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP),
            })
    return faces


def is_multi_face(dimensions):
    return len(parse_dimensions(dimensions)) > 1


def calculate_total_sqft(dimensions, stored_total=None):
    """Sum of width x height over all faces; a positive stored total wins"""
    if stored_total is not None and Decimal(stored_total) > 0:
        return Decimal(stored_total).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    faces = parse_dimensions(dimensions)
    total = sum((f['width'] * f['height'] for f in faces), Decimal('0'))
    return total.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_dimensions(dimensions):
    if not dimensions or not dimensions.strip():
        return 'N/A'
    trimmed = dimensions.strip()
    if MULTI_FACE_HINT.search(trimmed):
        return TIMES.sub('x', FACE_SEPARATOR.sub(' - ', trimmed))
    faces = parse_dimensions(trimmed)
    if len(faces) == 1:
        return f"{_num(faces[0]['width'])} x {_num(faces[0]['height'])}"
    return trimmed


def faces_as_json(dimensions):
    """JSON-friendly face list for storage on the asset"""
    return [
        {'width': float(f['width']), 'height': float(f['height']), 'sqft': float(f['sqft'])}
        for f in parse_dimensions(dimensions)
    ]
