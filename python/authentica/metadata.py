"""EXIF metadata extraction and consistency scoring."""
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from PIL import Image, UnidentifiedImageError

from .exceptions import MalformedImage
from .types import RasterImage, SignalScore

logger = logging.getLogger(__name__)

# EXIF tag ids
TAG_MAKE = 271
TAG_MODEL = 272
TAG_SOFTWARE = 305
TAG_DATETIME = 306
TAG_EXIF_IFD = 0x8769
TAG_DATETIME_ORIGINAL = 36867

EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'

EDITING_TOOLS = ('Photoshop', 'GIMP', 'Paint.NET', 'Lightroom')


@dataclass(frozen=True)
class ImageMetadata:
    """Metadata that travels with the encoded bytes, not the pixels."""
    format: Optional[str]
    dimensions: str
    has_alpha: bool
    exif: Dict[int, Any] = field(default_factory=dict)
    creation_date: Optional[datetime] = None
    original_date: Optional[datetime] = None
    modify_date: Optional[datetime] = None
    make: Optional[str] = None
    model: Optional[str] = None
    software: Optional[str] = None


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an EXIF or ISO-8601 date string; ``None`` if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value).strip().rstrip('\x00')
    for parser in (
        lambda s: datetime.strptime(s, EXIF_DATE_FORMAT),
        lambda s: datetime.fromisoformat(s.replace('Z', '+00:00')),
    ):
        try:
            return parser(text).replace(tzinfo=None)
        except ValueError:
            continue
    return None


def extract_metadata(data: bytes) -> ImageMetadata:
    """Read format, dimensions and EXIF fields from encoded image bytes."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            tags = {int(k): v for k, v in exif.items()}
            try:
                tags.update({int(k): v for k, v in exif.get_ifd(TAG_EXIF_IFD).items()})
            except (KeyError, ValueError):
                pass
            fmt = img.format.lower() if img.format else None
            dimensions = f"{img.width}x{img.height}"
            has_alpha = img.mode in ('LA', 'RGBA', 'PA') or 'transparency' in img.info
    except (UnidentifiedImageError, OSError) as e:
        raise MalformedImage(f"Could not read image metadata: {e}") from e

    original = parse_date(tags.get(TAG_DATETIME_ORIGINAL))
    modified = parse_date(tags.get(TAG_DATETIME))

    def text(tag):
        value = tags.get(tag)
        return str(value).strip().rstrip('\x00') if value is not None else None

    return ImageMetadata(
        format=fmt,
        dimensions=dimensions,
        has_alpha=has_alpha,
        exif=tags,
        creation_date=original or modified,
        original_date=original,
        modify_date=modified,
        make=text(TAG_MAKE),
        model=text(TAG_MODEL),
        software=text(TAG_SOFTWARE),
    )


def _is_editing_software(software: Optional[str]) -> bool:
    if not software:
        return False
    lowered = software.lower()
    return any(tool.lower() in lowered for tool in EDITING_TOOLS)


def analyze_metadata(
    image: RasterImage,
    metadata: Optional[ImageMetadata] = None,
    modified_at: Optional[str] = None,
    date_penalty: float = 0.3,
    missing_exif_penalty: float = 0.2,
    editing_software_penalty: float = 0.4,
    missing_camera_penalty: float = 0.2,
    capture_gap_penalty: float = 0.15,
    max_capture_gap_days: float = 1.0,
) -> SignalScore:
    """Score metadata consistency; higher is more credible.

    Starts at 1.0 and subtracts a penalty per check that fails:

      * creation date later than ``modified_at``
      * no EXIF at all
      * EXIF ``Software`` names a known editing tool
      * EXIF present but neither camera make nor model
      * EXIF original and modify dates more than ``max_capture_gap_days`` apart

    Args:
        image: Decoded raster. Unused; the metadata describes the encoded bytes.
        metadata: Metadata extracted from the encoded bytes.
        modified_at: Last-modified timestamp of the source file, if known.
    """
    if metadata is None:
        raise ValueError('metadata consistency needs the encoded source bytes')

    score = 1.0
    findings = []

    modified = parse_date(modified_at)
    if metadata.creation_date and modified and metadata.creation_date > modified:
        findings.append('Creation date is later than the modification date')
        score -= date_penalty

    edited = _is_editing_software(metadata.software)
    if edited:
        logger.debug(f"Editing software in EXIF: {metadata.software}")
        findings.append(f"Image edited with {metadata.software}")
        score -= editing_software_penalty

    if not metadata.exif:
        findings.append('No EXIF metadata found')
        score -= missing_exif_penalty
    elif not metadata.make and not metadata.model:
        findings.append('Camera information missing')
        score -= missing_camera_penalty

    gap_days = None
    if metadata.original_date and metadata.modify_date:
        gap_days = abs((metadata.modify_date - metadata.original_date).total_seconds()) / 86400.0
        if gap_days > max_capture_gap_days:
            findings.append(f"File modified {int(gap_days)} days after capture")
            score -= capture_gap_penalty

    score = max(0.0, score)

    return SignalScore(
        name='metadata_consistency',
        raw_value=score,
        normalized_score=score,
        consistent=score >= 0.5,
        findings=findings,
        details={
            'format': metadata.format,
            'dimensions': metadata.dimensions,
            'exif_tag_count': len(metadata.exif),
            'creation_date': metadata.creation_date.isoformat() if metadata.creation_date else None,
            'modification_date': modified.isoformat() if modified else None,
            'capture_gap_days': gap_days,
            'device': {'make': metadata.make, 'model': metadata.model},
            'software': metadata.software,
            'edited': edited,
        },
    )
