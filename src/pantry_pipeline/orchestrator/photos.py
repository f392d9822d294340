import os
from typing import Iterable, List, Sequence, Set

from ..domain.models import CapturedPhoto
from ..logging import get_logger
from ..paths import expand_abs

LOG = get_logger("photos")

PHOTO_EXTS: Set[str] = {".jpg", ".jpeg", ".png", ".heic"}


def _normalize_exts(exts: Iterable[str]) -> Set[str]:
    out: Set[str] = set()
    for e in exts:
        if not e:
            continue
        ee = e.lower()
        if not ee.startswith('.'):
            ee = '.' + ee
        out.add(ee)
    return out


def photos_from_paths(paths: Sequence[str]) -> List[CapturedPhoto]:
    """Wrap paths as CapturedPhotos with indices in the given order."""
    return [CapturedPhoto(uri=expand_abs(p), local_index=i) for i, p in enumerate(paths)]


def collect_photos(directory: str, exts: Iterable[str] = PHOTO_EXTS) -> List[CapturedPhoto]:
    """List image files in a directory, sorted by name, as one capture batch."""
    wanted = _normalize_exts(exts)
    root = expand_abs(directory)
    try:
        entries = os.listdir(root)
    except FileNotFoundError:
        LOG.error(f"Photo directory does not exist: {root}")
        return []
    except PermissionError:
        LOG.error(f"Permission denied listing photo directory: {root}")
        return []

    names = sorted(
        name
        for name in entries
        if os.path.isfile(os.path.join(root, name)) and os.path.splitext(name)[1].lower() in wanted
    )
    LOG.info(f"Found {len(names)} photo(s) in {root}")
    return photos_from_paths([os.path.join(root, n) for n in names])
