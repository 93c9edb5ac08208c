from __future__ import annotations

from core.errors import ProfileStoreError
from core.logging_config import get_logger
from repositories.profile_repo import MissingColumnError, ProfileRepository, ProfileRepositoryError
from schemas.theme_schema import DEFAULT_THEME, ThemePreferenceOut, ThemeUpdateResult
from security.session import AuthSession

logger = get_logger(__name__)

_VALID_THEMES = {"light", "dark", "system"}


async def get_theme_preference(*, repository: ProfileRepository, session: AuthSession) -> ThemePreferenceOut:
    try:
        stored = await repository.get_theme_preference(
            user_id=session.user_id,
            access_token=session.access_token,
        )
    except MissingColumnError:
        logger.warning("Theme preference column not found, using default theme. Database migration may be pending.")
        return ThemePreferenceOut(theme=DEFAULT_THEME)
    except ProfileRepositoryError as err:
        logger.error(
            "Error fetching theme preference: %s",
            err,
            extra={"user_id": session.user_id, "provider_code": err.code},
        )
        raise ProfileStoreError("Failed to fetch theme preference", provider_code=err.code) from err

    if stored not in _VALID_THEMES:
        return ThemePreferenceOut(theme=DEFAULT_THEME)
    return ThemePreferenceOut(theme=stored)


async def update_theme_preference(
    *,
    repository: ProfileRepository,
    session: AuthSession,
    theme: str,
) -> ThemeUpdateResult:
    try:
        await repository.set_theme_preference(
            user_id=session.user_id,
            access_token=session.access_token,
            theme=theme,
        )
    except MissingColumnError:
        logger.warning(
            "Theme preference column not found, theme not persisted. Database migration may be pending."
        )
        return ThemeUpdateResult(
            message="Theme preference updated locally (database persistence pending migration)",
            theme=theme,
            warning="Theme preference not persisted to database - migration required",
        )
    except ProfileRepositoryError as err:
        logger.error(
            "Error updating theme preference: %s",
            err,
            extra={"user_id": session.user_id, "provider_code": err.code},
        )
        raise ProfileStoreError("Failed to update theme preference", provider_code=err.code) from err

    return ThemeUpdateResult(message="Theme preference updated successfully", theme=theme)
