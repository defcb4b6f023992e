from invoice_templates.config import PADDING_CONFIDENCE_GAIN, TEMPLATE_BASE_PADDING
from invoice_templates.match.geometry import center_distance, iou


def search_padding(
    confidence,
    image_size,
    base=TEMPLATE_BASE_PADDING,
    gain=PADDING_CONFIDENCE_GAIN,
):
    """Pixel padding (x, y) around a learned region.

    A fully trusted region is searched with ``base`` of the image size on
    each side; the padding grows linearly to ``base * (1 + gain)`` as the
    confidence drops to zero.
    """
    confidence = max(0.0, min(1.0, float(confidence)))
    factor = base * (1.0 + (1.0 - confidence) * gain)
    width, height = image_size
    return width * factor, height * factor


def placement_score(fragment_box, region_box):
    overlap = iou(fragment_box, region_box)
    diagonal = region_box.diagonal
    if diagonal <= 0:
        closeness = 0.0
    else:
        closeness = 1.0 - min(1.0, center_distance(fragment_box, region_box) / diagonal)
    return overlap + 0.5 * closeness
