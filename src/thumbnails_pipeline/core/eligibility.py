"""Decide which notifications the pipeline should process."""

import posixpath
from typing import Iterable

from .keys import matches_size_marker
from .models import DEFAULT_EXTENSIONS, EligibilityDecision, Notification, SkipReason


def screen_notification(
    notification: Notification, extensions: Iterable[str] = DEFAULT_EXTENSIONS
) -> EligibilityDecision:
    """
    Screen a notification. The first matching rule wins.

    1. Keys ending in "/" are directory markers.
    2. Keys carrying a size marker are thumbnails this pipeline wrote; processing
       them would re-trigger the pipeline on its own output.
    3. Keys whose extension is not supported (case-insensitive) are ignored.

    Args:
        notification: The notification to screen
        extensions: Supported extensions with a leading dot

    Returns:
        EligibilityDecision to process or skip with a reason
    """
    key = notification.key

    if key.endswith("/"):
        return EligibilityDecision.skip(SkipReason.DIRECTORY)

    if matches_size_marker(key):
        return EligibilityDecision.skip(SkipReason.DERIVED_THUMBNAIL)

    ext = posixpath.splitext(key)[1].lower()
    if ext not in {e.lower() for e in extensions}:
        return EligibilityDecision.skip(SkipReason.UNSUPPORTED_TYPE)

    return EligibilityDecision.accept()
