"""
Known host integration points.

Each integration point is an ordered strategy tuple for `probing.probe`, plus
small helpers that apply it. Strategy order encodes precedence: the first
strategy that yields a capability wins, so newer host API shapes are listed
before older ones.

A host is any object. The reference `JsonWorkspaceHost` satisfies the first
strategy of every integration point; hosts embedded in other tools may expose
only some of them under the alternative names.
"""

from __future__ import annotations

import logging
import os
from collections.abc import MutableMapping, MutableSequence, Sequence
from pathlib import Path
from typing import Any, Callable

from .probing import (
    IntegrationStrategy,
    ProbeResult,
    call_with_optional_flag,
    find_callable,
    find_member,
    has_callable,
    has_member,
    member_value,
    probe,
)

logger = logging.getLogger(__name__)

BUILD_ROOT_FILE_NAME = "CMakeLists.txt"

_PROFILE_LIST_NAMES = ("profiles", "configurations")
_PROFILE_GETTER_NAMES = ("get_profiles", "get_configurations")


def _as_profile_list(value: Any) -> Sequence[Any] | None:
    if isinstance(value, (str, bytes)):
        return None
    if isinstance(value, (list, tuple, MutableSequence)):
        return value
    return None


# ---------- Profile settings object ----------
def _settings_attribute(host: Any) -> Any | None:
    for name in ("profile_settings", "cmake_settings"):
        value = find_member(host, name)
        if value is not None and not callable(value):
            return value
    return None


def _settings_getter(host: Any) -> Any | None:
    getter = find_callable(host, "get_profile_settings", "get_cmake_settings", "get_settings")
    return getter() if getter is not None else None


SETTINGS_STRATEGIES: tuple[IntegrationStrategy[Any], ...] = (
    IntegrationStrategy(
        "settings-attribute", has_member("profile_settings", "cmake_settings"), _settings_attribute
    ),
    IntegrationStrategy(
        "settings-getter",
        has_callable("get_profile_settings", "get_cmake_settings", "get_settings"),
        _settings_getter,
    ),
    IntegrationStrategy(
        "host-is-settings",
        has_member(*_PROFILE_GETTER_NAMES, *_PROFILE_LIST_NAMES, "get_state", "state"),
        lambda host: host,
    ),
)


# ---------- Profile collection ----------
def _profiles_from_getters(settings: Any) -> Sequence[Any] | None:
    for name in _PROFILE_GETTER_NAMES:
        getter = find_callable(settings, name)
        if getter is not None:
            found = _as_profile_list(getter())
            if found is not None:
                return found
    return None


def _profiles_from_attributes(settings: Any) -> Sequence[Any] | None:
    for name in _PROFILE_LIST_NAMES:
        found = _as_profile_list(find_member(settings, name))
        if found is not None:
            return found
    return None


def _state_of(settings: Any) -> Any | None:
    getter = find_callable(settings, "get_state")
    if getter is not None:
        return getter()
    state = find_member(settings, "state")
    return None if callable(state) else state


def _profiles_from_state(settings: Any) -> Sequence[Any] | None:
    state = _state_of(settings)
    if state is None:
        return None
    if isinstance(state, MutableMapping):
        for name in _PROFILE_LIST_NAMES:
            found = _as_profile_list(state.get(name))
            if found is not None:
                return found
        return None
    found = _profiles_from_attributes(state)
    return found if found is not None else _profiles_from_getters(state)


PROFILE_LIST_STRATEGIES: tuple[IntegrationStrategy[Sequence[Any]], ...] = (
    IntegrationStrategy("profile-getter", has_callable(*_PROFILE_GETTER_NAMES), _profiles_from_getters),
    IntegrationStrategy("profile-attribute", has_member(*_PROFILE_LIST_NAMES), _profiles_from_attributes),
    IntegrationStrategy("state-bean", has_member("get_state", "state"), _profiles_from_state),
)


def find_profile_settings(host: Any) -> ProbeResult[Any] | None:
    """Locate the object that owns the host's profile collection."""
    return probe(host, SETTINGS_STRATEGIES, purpose="profile settings")


def find_profiles(settings: Any) -> ProbeResult[Sequence[Any]] | None:
    """Locate the profile collection on a settings object."""
    return probe(settings, PROFILE_LIST_STRATEGIES, purpose="profile collection")


def write_back_profiles(settings: Any, profiles: Sequence[Any]) -> str | None:
    """
    Write a (possibly mutated) profile collection back to its owner.

    Returns
    -------
    str | None
        The name of the write-back path used, or None when the host offers
        none (in-place mutation is then the only effect).
    """
    for name in ("set_profiles", "set_configurations"):
        setter = find_callable(settings, name)
        if setter is not None:
            setter(profiles)
            return name
    load_state = find_callable(settings, "load_state")
    if load_state is not None:
        state = _state_of(settings)
        if state is not None:
            load_state(state)
            return "load_state"
    return None


# ---------- Profile fields ----------
def profile_name(profile: Any) -> str | None:
    """Resolve a profile's name, preferring the primary name over the display name."""
    for names in (("name", "get_name"), ("display_name", "get_display_name", "displayName")):
        value = member_value(profile, *names)
        if value is not None:
            text = str(value).strip()
            if text:
                return text
    return None


def profile_enabled(profile: Any) -> bool | None:
    """Return the profile's enabled flag, or None when it cannot be read."""
    names = ("enabled", "is_enabled", "get_enabled", "active", "is_active")
    if isinstance(profile, MutableMapping):
        for name in ("enabled", "active"):
            if isinstance(profile.get(name), bool):
                return profile[name]
        return None
    for name in names:
        member = find_member(profile, name)
        if member is None:
            continue
        try:
            value = member() if callable(member) else member
        except Exception:
            continue
        if isinstance(value, bool):
            return value
    return None


def enable_profile(profile: Any) -> bool:
    """
    Flip a profile to enabled.

    Returns
    -------
    bool
        True if a writer was found and invoked.
    """
    if isinstance(profile, MutableMapping):
        for name in ("enabled", "active"):
            if name in profile:
                profile[name] = True
                return True
        profile["enabled"] = True
        return True

    setter = find_callable(profile, "set_enabled", "set_active")
    if setter is not None:
        setter(True)
        return True
    for name in ("enabled", "active"):
        if isinstance(find_member(profile, name), bool):
            setattr(profile, name, True)
            return True
    return False


# ---------- Preset refresh ----------
def _refresh_via_loader(host: Any) -> Callable[[], Any] | None:
    loader = find_member(host, "preset_loader")
    if callable(loader):
        loader = loader()
    if loader is None:
        getter = find_callable(host, "get_preset_loader")
        loader = getter() if getter is not None else None
    load = find_callable(loader, "load")
    if load is None:
        return None
    # Prefer load(False): profiles only need to exist, a forced reload is redundant.
    return lambda: call_with_optional_flag(load, False)


def _refresh_via_host(host: Any) -> Callable[[], Any] | None:
    return find_callable(host, "import_presets", "refresh_presets")


PRESET_REFRESH_STRATEGIES: tuple[IntegrationStrategy[Callable[[], Any]], ...] = (
    IntegrationStrategy(
        "preset-loader", has_member("preset_loader", "get_preset_loader"), _refresh_via_loader
    ),
    IntegrationStrategy(
        "host-import", has_callable("import_presets", "refresh_presets"), _refresh_via_host
    ),
)


def refresh_presets(host: Any) -> bool:
    """
    Ask the host to import build-preset definitions into profiles.

    Best effort: failures are logged at debug level and reported as False.
    """
    found = probe(host, PRESET_REFRESH_STRATEGIES, purpose="preset refresh")
    if found is None:
        return False
    try:
        found.value()
    except Exception as exc:
        logger.debug("Preset refresh via %s failed (continuing): %s", found.strategy, exc, exc_info=True)
        return False
    return True


# ---------- Reload ----------
_RELOAD_NAMES = ("schedule_rebuild", "schedule_reload", "reload", "generate", "schedule_generate")


def _workspace_of(host: Any) -> Any | None:
    workspace = find_member(host, "workspace")
    if workspace is not None and not callable(workspace):
        return workspace
    getter = find_callable(host, "get_workspace")
    return getter() if getter is not None else None


def _reload_on(target: Any) -> Callable[[], Any] | None:
    fn = find_callable(target, *_RELOAD_NAMES)
    if fn is None:
        return None
    return lambda: call_with_optional_flag(fn, True)


RELOAD_STRATEGIES: tuple[IntegrationStrategy[Callable[[], Any]], ...] = (
    IntegrationStrategy(
        "workspace-reload",
        has_member("workspace", "get_workspace"),
        lambda host: _reload_on(_workspace_of(host)),
    ),
    IntegrationStrategy("host-reload", has_callable(*_RELOAD_NAMES), _reload_on),
)


def schedule_reload(host: Any) -> bool:
    """
    Ask the host to schedule a reload/regeneration. Does not wait for it.

    Returns
    -------
    bool
        True if a reload request was issued.
    """
    found = probe(host, RELOAD_STRATEGIES, purpose="reload")
    if found is None:
        return False
    try:
        found.value()
    except Exception as exc:
        logger.debug("Reload via %s failed: %s", found.strategy, exc, exc_info=True)
        return False
    return True


# ---------- Load build root ----------
LOAD_STRATEGIES: tuple[IntegrationStrategy[Callable[[Any], Any]], ...] = (
    IntegrationStrategy(
        "load-build-root",
        has_callable("load_build_root"),
        lambda host: find_callable(host, "load_build_root"),
    ),
    IntegrationStrategy(
        "load-project",
        has_callable("load_project", "load_cmake_project"),
        lambda host: find_callable(host, "load_project", "load_cmake_project"),
    ),
)


def find_loader(host: Any) -> ProbeResult[Callable[[Any], Any]] | None:
    """Locate the host's "load build root" operation."""
    return probe(host, LOAD_STRATEGIES, purpose="load build root")


# ---------- Current build root ----------
def _existing_file(value: Any) -> str | None:
    if value is None:
        return None
    try:
        path = Path(os.fspath(value))
    except TypeError:
        return None
    return str(path) if path.is_file() else None


def _root_from_model_dir(host: Any) -> str | None:
    model_dir = member_value(host, "model_project_dir", "get_model_project_dir")
    if model_dir is None:
        return None
    try:
        candidate = Path(os.fspath(model_dir)) / BUILD_ROOT_FILE_NAME
    except TypeError:
        return None
    return str(candidate) if candidate.is_file() else None


CURRENT_ROOT_STRATEGIES: tuple[IntegrationStrategy[str], ...] = (
    IntegrationStrategy(
        "current-build-root",
        has_member("current_build_root", "loaded_build_root", "get_loaded_build_root"),
        lambda host: _existing_file(
            member_value(host, "current_build_root", "loaded_build_root", "get_loaded_build_root")
        ),
    ),
    IntegrationStrategy(
        "model-project-dir",
        has_member("model_project_dir", "get_model_project_dir"),
        _root_from_model_dir,
    ),
)


def detect_current_build_root(host: Any) -> str | None:
    """Ask the host which build root it currently has loaded, if any."""
    found = probe(host, CURRENT_ROOT_STRATEGIES, purpose="current build root")
    return found.value if found is not None else None


# ---------- Load notifications ----------
def add_load_listener(host: Any, callback: Callable[[Any], None]) -> Callable[[], None] | None:
    """
    Register `callback` for build root loads performed by the host itself.

    Returns
    -------
    Callable[[], None] | None
        Unsubscribe function. A no-op function when the host accepted the
        listener but returned nothing; None when the host has no such hook.
    """
    register = find_callable(host, "add_load_listener")
    if register is None:
        return None
    try:
        handle = register(callback)
    except Exception as exc:
        logger.debug("add_load_listener failed: %s", exc, exc_info=True)
        return None
    if callable(handle):
        return handle
    remove = find_callable(host, "remove_load_listener")
    if remove is not None:
        return lambda: remove(callback)
    return lambda: None
