"""Pure helpers turning OCR collaborator payloads into a plain text blob."""

from __future__ import annotations

from typing import Any

# Filter thresholds for raw detections
MIN_DETECTION_CONFIDENCE = 0.5
MIN_DETECTION_TEXT_LENGTH = 1
MIN_Y_OVERLAP_RATIO = 0.5


def _boxes_overlap_y(det1: dict[str, Any], det2: dict[str, Any], min_overlap_ratio: float = MIN_Y_OVERLAP_RATIO) -> bool:
    """
    Check if two detection boxes overlap in Y-axis by at least min_overlap_ratio.

    Overlap is measured against the shorter box so a tall item box still joins
    the price printed beside it.
    """
    overlap_start = max(det1["y_min"], det2["y_min"])
    overlap_end = min(det1["y_max"], det2["y_max"])
    if overlap_start >= overlap_end:
        return False

    smaller_height = min(det1["y_max"] - det1["y_min"], det2["y_max"] - det2["y_min"])
    if smaller_height <= 0:
        return False
    return (overlap_end - overlap_start) / smaller_height >= min_overlap_ratio


def _detection_rows(detections: list[Any]) -> list[list[dict[str, Any]]]:
    """Group [bbox, (text, confidence)] detections into reading-order rows."""
    boxes: list[dict[str, Any]] = []
    for detection in detections:
        try:
            bbox, (text, confidence) = detection
            if confidence < MIN_DETECTION_CONFIDENCE or len(str(text).strip()) < MIN_DETECTION_TEXT_LENGTH:
                continue
            y_coords = [float(point[1]) for point in bbox]
            box = {
                "text": str(text).strip(),
                "min_x": min(float(point[0]) for point in bbox),
                "y_min": min(y_coords),
                "y_max": max(y_coords),
                "center_y": sum(y_coords) / len(y_coords),
            }
        except (TypeError, ValueError, IndexError, ZeroDivisionError) as e:
            raise ValueError(f"Malformed OCR detection: {detection!r}") from e
        boxes.append(box)

    boxes.sort(key=lambda d: (d["center_y"], d["min_x"]))

    rows: list[list[dict[str, Any]]] = []
    for box in boxes:
        if rows and any(_boxes_overlap_y(box, other) for other in rows[-1]):
            rows[-1].append(box)
        else:
            rows.append([box])

    for row in rows:
        row.sort(key=lambda d: d["min_x"])
    return rows


def ocr_payload_to_text(payload: Any) -> str:
    """
    Reduce an OCR payload to the text blob the parser consumes.

    Accepts a plain string, a mapping with "full_text" or "text", or a mapping
    with raw "detections". Bounding boxes and per-token confidences are
    discarded once rows are assembled.

    Raises:
        TypeError: payload is neither a string nor a mapping.
        ValueError: a detection is not [bbox, (text, confidence)].
    """
    if isinstance(payload, str):
        return payload
    if not isinstance(payload, dict):
        raise TypeError(f"Unsupported OCR payload type: {type(payload).__name__}")

    for key in ("full_text", "text"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value

    detections = payload.get("detections") or []
    if not isinstance(detections, list):
        raise ValueError("OCR detections must be a list")
    rows = _detection_rows(detections)
    return "\n".join(" ".join(box["text"] for box in row) for row in rows)
