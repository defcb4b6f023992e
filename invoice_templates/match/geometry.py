import math

from invoice_templates.models import Rect


def bbox_union(boxes):
    boxes = [b for b in boxes if b is not None]
    if not boxes:
        return None
    return Rect(
        min(b.x1 for b in boxes),
        min(b.y1 for b in boxes),
        max(b.x2 for b in boxes),
        max(b.y2 for b in boxes),
    )


def normalize_box(box, image_size):
    width, height = image_size
    if not width or not height:
        raise ValueError(f"image size must be positive, got {image_size!r}")
    return Rect(
        _clamp(box.x1 / width),
        _clamp(box.y1 / height),
        _clamp(box.x2 / width),
        _clamp(box.y2 / height),
    )


def denormalize_box(box, image_size):
    width, height = image_size
    return Rect(box.x1 * width, box.y1 * height, box.x2 * width, box.y2 * height)


def expand_box(box, pad_x, pad_y, bounds=None):
    x1, y1, x2, y2 = box.x1 - pad_x, box.y1 - pad_y, box.x2 + pad_x, box.y2 + pad_y
    if bounds is not None:
        width, height = bounds
        x1, y1 = max(0.0, x1), max(0.0, y1)
        x2, y2 = min(float(width), x2), min(float(height), y2)
    return Rect(x1, y1, x2, y2)


def intersects(a, b):
    return a.x1 <= b.x2 and b.x1 <= a.x2 and a.y1 <= b.y2 and b.y1 <= a.y2


def contains_point(box, point):
    x, y = point
    return box.x1 <= x <= box.x2 and box.y1 <= y <= box.y2


def intersection_area(a, b):
    w = min(a.x2, b.x2) - max(a.x1, b.x1)
    h = min(a.y2, b.y2) - max(a.y1, b.y1)
    if w <= 0 or h <= 0:
        return 0.0
    return w * h


def iou(a, b):
    inter = intersection_area(a, b)
    union = a.area + b.area - inter
    if union <= 0:
        return 0.0
    return inter / union


def center_distance(a, b):
    ax, ay = a.center
    bx, by = b.center
    return math.hypot(ax - bx, ay - by)


def region_distance(stored, candidate):
    # center offset measured in units of the stored region's diagonal
    diagonal = stored.diagonal
    distance = center_distance(stored, candidate)
    if diagonal <= 0:
        return 0.0 if distance == 0 else math.inf
    return distance / diagonal


def is_near(a, b):
    # within one line height vertically and two line heights horizontally
    line_height = max(a.height, b.height)
    vertical_gap = max(0.0, max(a.y1, b.y1) - min(a.y2, b.y2))
    horizontal_gap = max(0.0, max(a.x1, b.x1) - min(a.x2, b.x2))
    return vertical_gap <= line_height and horizontal_gap <= 2 * line_height


def reading_order(boxes):
    """Indices of ``boxes`` top to bottom, then left to right within a line.

    Boxes whose vertical centres are closer than half a line height share a
    line, so words with slightly different baselines keep their x order.
    """
    boxes = list(boxes)
    lines = []
    for index in sorted(range(len(boxes)), key=lambda i: (boxes[i].center[1], boxes[i].x1)):
        box = boxes[index]
        if lines:
            last = boxes[lines[-1][-1]]
            if abs(box.center[1] - last.center[1]) <= max(box.height, last.height) / 2:
                lines[-1].append(index)
                continue
        lines.append([index])
    return [i for line in lines for i in sorted(line, key=lambda k: boxes[k].x1)]


def _clamp(value, low=0.0, high=1.0):
    return max(low, min(high, value))
