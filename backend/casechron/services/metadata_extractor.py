"""
Embedded image metadata (EXIF) via Pillow.

The result is an audit-trail bag stored with the Document and fed into the
vision prompt. It never produces chronology entries on its own.
"""

from __future__ import annotations

import io
from typing import Any, Optional

from PIL import Image
from PIL.ExifTags import GPSTAGS, TAGS

from casechron.core.logger import logger

EXIF_IFD = 0x8769
GPS_IFD = 0x8825

# EXIF tag name -> metadata key
_BASE_TAGS = {
    "Make": "make",
    "Model": "model",
    "DateTime": "dateTime",
    "Software": "software",
    "Artist": "artist",
    "Copyright": "copyright",
    "ImageDescription": "imageDescription",
}
_EXIF_TAGS = {
    "DateTimeOriginal": "dateTimeOriginal",
    "DateTimeDigitized": "dateTimeDigitized",
    "LensModel": "lensModel",
}


def _clean(value: Any) -> Any:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if value is None or isinstance(value, (bool, int)):
        return value
    value = str(value).replace("\x00", "").strip()
    return value or None


def _xp_text(value: Any) -> Optional[str]:
    """Windows XP* tags are UTF-16LE byte strings."""
    if isinstance(value, tuple):
        value = bytes(value)
    if isinstance(value, bytes):
        return _clean(value.decode("utf-16-le", errors="replace"))
    return _clean(value)


def _to_degrees(dms: Any) -> Optional[float]:
    try:
        degrees, minutes, seconds = (float(part) for part in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return degrees + minutes / 60.0 + seconds / 3600.0


def _gps(gps_ifd: dict) -> Optional[dict[str, float]]:
    named = {GPSTAGS.get(tag, tag): value for tag, value in gps_ifd.items()}
    latitude = _to_degrees(named.get("GPSLatitude"))
    longitude = _to_degrees(named.get("GPSLongitude"))
    if latitude is None or longitude is None:
        return None
    if named.get("GPSLatitudeRef") in ("S", b"S"):
        latitude = -latitude
    if named.get("GPSLongitudeRef") in ("W", b"W"):
        longitude = -longitude

    gps: dict[str, float] = {"latitude": round(latitude, 6), "longitude": round(longitude, 6)}
    altitude = named.get("GPSAltitude")
    if altitude is not None:
        try:
            gps["altitude"] = round(float(altitude), 2)
        except (TypeError, ValueError, ZeroDivisionError):
            pass
    return gps


def extract_image_metadata(data: bytes) -> Optional[dict[str, Any]]:
    """
    Return capture device, timestamps, dimensions, GPS, authorship and
    description/keywords embedded in *data*, or None when the image carries
    no EXIF block or cannot be read.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            exif = image.getexif()
            if not exif:
                return None
            width, height = image.size

            named = {TAGS.get(tag, tag): value for tag, value in exif.items()}
            metadata: dict[str, Any] = {"width": width, "height": height}

            for tag_name, key in _BASE_TAGS.items():
                value = _clean(named.get(tag_name))
                if value is not None:
                    metadata[key] = value

            exif_ifd = {TAGS.get(tag, tag): value for tag, value in exif.get_ifd(EXIF_IFD).items()}
            for tag_name, key in _EXIF_TAGS.items():
                value = _clean(exif_ifd.get(tag_name))
                if value is not None:
                    metadata[key] = value

            keywords = _xp_text(named.get("XPKeywords"))
            if keywords:
                metadata["keywords"] = keywords
            if "imageDescription" not in metadata:
                comment = _xp_text(named.get("XPComment"))
                if comment:
                    metadata["imageDescription"] = comment

            gps = _gps(exif.get_ifd(GPS_IFD))
            if gps:
                metadata["gps"] = gps
    except Exception as exc:
        logger.warning("Image metadata extraction failed: %s", exc)
        return None

    logger.info("Extracted %d image metadata fields", len(metadata))
    return metadata


def format_metadata(metadata: Optional[dict[str, Any]]) -> str:
    """Human-readable lines for prompts and the stored description."""
    if not metadata:
        return "No embedded metadata found."
    lines = []
    for key, value in metadata.items():
        if key == "gps" and isinstance(value, dict):
            location = f"{value.get('latitude')}, {value.get('longitude')}"
            if "altitude" in value:
                location += f" (altitude {value['altitude']} m)"
            lines.append(f"- GPS location: {location}")
        else:
            lines.append(f"- {key}: {value}")
    return "\n".join(lines)
