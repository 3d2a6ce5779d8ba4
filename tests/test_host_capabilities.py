from __future__ import annotations

from pathlib import Path
from typing import Any

from mux_engine.host import capabilities
from mux_engine.host.probing import (
    IntegrationStrategy,
    accepts_positional,
    call_with_optional_flag,
    member_value,
    probe,
)


class _Bean:
    """Getter/setter-style profile."""

    def __init__(self, display: str, enabled: bool = False) -> None:
        self._display = display
        self._enabled = enabled

    def get_display_name(self) -> str:
        return self._display

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, value: bool) -> None:
        self._enabled = value


class _StateHost:
    """Host whose profiles live in a state object that is written back via load_state."""

    def __init__(self, profiles: list[Any]) -> None:
        self.state = {"configurations": profiles}
        self.loaded_states: list[Any] = []

    def get_state(self) -> dict[str, Any]:
        return self.state

    def load_state(self, state: Any) -> None:
        self.loaded_states.append(state)


def test_probe_returns_first_available_strategy() -> None:
    strategies = (
        IntegrationStrategy("never", lambda t: False, lambda t: "x"),
        IntegrationStrategy("empty", lambda t: True, lambda t: None),
        IntegrationStrategy("broken", lambda t: True, lambda t: 1 / 0),
        IntegrationStrategy("works", lambda t: True, lambda t: "value"),
    )
    found = probe(object(), strategies, purpose="test")
    assert found is not None
    assert (found.strategy, found.value) == ("works", "value")


def test_probe_of_nothing_is_none() -> None:
    assert probe(None, (IntegrationStrategy("any", lambda t: True, lambda t: 1),), purpose="t") is None
    assert probe(object(), (), purpose="t") is None


def test_optional_flag_calls() -> None:
    calls: list[tuple[Any, ...]] = []

    def with_flag(flag: bool) -> None:
        calls.append((flag,))

    def without_flag() -> None:
        calls.append(())

    assert accepts_positional(with_flag)
    assert not accepts_positional(without_flag)
    call_with_optional_flag(with_flag, True)
    call_with_optional_flag(without_flag, True)
    assert calls == [(True,), ()]


def test_member_value_prefers_earlier_names_and_reads_mappings() -> None:
    assert member_value({"name": "Debug"}, "name") == "Debug"
    assert member_value(_Bean("Shown"), "get_name", "get_display_name") == "Shown"
    assert member_value(object(), "name") is None


def test_profiles_found_on_host_attribute() -> None:
    class Host:
        profiles = [{"name": "Debug", "enabled": False}]

    settings = capabilities.find_profile_settings(Host())
    assert settings is not None
    found = capabilities.find_profiles(settings.value)
    assert found is not None and found.strategy == "profile-attribute"


def test_profiles_found_on_nested_settings_getter() -> None:
    beans = [_Bean("Debug")]

    class Settings:
        def get_profiles(self) -> list[_Bean]:
            return beans

    class Host:
        def get_cmake_settings(self) -> Settings:
            return Settings()

    settings = capabilities.find_profile_settings(Host())
    assert settings is not None and settings.strategy == "settings-getter"
    found = capabilities.find_profiles(settings.value)
    assert found is not None and found.value is beans


def test_profiles_found_in_state_bean_and_written_back_with_load_state() -> None:
    host = _StateHost([{"name": "Debug", "enabled": False}])

    settings = capabilities.find_profile_settings(host)
    assert settings is not None
    found = capabilities.find_profiles(settings.value)
    assert found is not None and found.strategy == "state-bean"

    assert capabilities.write_back_profiles(settings.value, found.value) == "load_state"
    assert host.loaded_states == [host.state]


def test_host_without_profiles_yields_nothing() -> None:
    assert capabilities.find_profile_settings(object()) is None


def test_profile_name_prefers_primary_name() -> None:
    assert capabilities.profile_name({"name": "Debug", "displayName": "Shown"}) == "Debug"
    assert capabilities.profile_name({"name": " ", "displayName": "Shown"}) == "Shown"
    assert capabilities.profile_name(_Bean("Bean")) == "Bean"
    assert capabilities.profile_name(object()) is None


def test_enable_profile_across_shapes() -> None:
    mapping = {"name": "Debug", "enabled": False}
    bean = _Bean("Debug")

    class Plain:
        enabled = False

    plain = Plain()

    assert capabilities.enable_profile(mapping) and mapping["enabled"] is True
    assert capabilities.enable_profile(bean) and bean.is_enabled()
    assert capabilities.enable_profile(plain) and plain.enabled is True
    assert capabilities.enable_profile(object()) is False


def test_profile_enabled_reads_flag_or_none() -> None:
    assert capabilities.profile_enabled({"enabled": True}) is True
    assert capabilities.profile_enabled(_Bean("x", enabled=False)) is False
    assert capabilities.profile_enabled(object()) is None


def test_refresh_presets_prefers_loader_without_force() -> None:
    calls: list[bool] = []

    class Loader:
        def load(self, reload: bool) -> None:
            calls.append(reload)

    class Host:
        preset_loader = Loader()

    assert capabilities.refresh_presets(Host()) is True
    assert calls == [False]


def test_refresh_presets_failure_is_not_fatal() -> None:
    class Host:
        def import_presets(self) -> None:
            raise OSError("cannot read presets")

    assert capabilities.refresh_presets(Host()) is False
    assert capabilities.refresh_presets(object()) is False


def test_schedule_reload_on_workspace_with_force_flag() -> None:
    calls: list[bool] = []

    class Workspace:
        def schedule_reload(self, force: bool) -> None:
            calls.append(force)

    class Host:
        workspace = Workspace()

    assert capabilities.schedule_reload(Host()) is True
    assert calls == [True]
    assert capabilities.schedule_reload(object()) is False


def test_find_loader_alternatives() -> None:
    class Modern:
        def load_build_root(self, target: Any) -> bool:
            return True

    class Legacy:
        def load_cmake_project(self, target: Any) -> None:
            return None

    modern = capabilities.find_loader(Modern())
    legacy = capabilities.find_loader(Legacy())
    assert modern is not None and modern.strategy == "load-build-root"
    assert legacy is not None and legacy.strategy == "load-project"
    assert capabilities.find_loader(object()) is None


def test_detect_current_build_root_requires_an_existing_file(build_root: Path) -> None:
    class Loaded:
        loaded_build_root = str(build_root)

    class Stale:
        loaded_build_root = str(build_root.parent / "missing" / "CMakeLists.txt")

    class ModelDir:
        def get_model_project_dir(self) -> Path:
            return build_root.parent

    assert capabilities.detect_current_build_root(Loaded()) == str(build_root)
    assert capabilities.detect_current_build_root(Stale()) is None
    assert capabilities.detect_current_build_root(ModelDir()) == str(build_root)


def test_add_load_listener_variants() -> None:
    registered: list[Any] = []

    class WithRemover:
        def add_load_listener(self, cb: Any) -> None:
            registered.append(cb)

        def remove_load_listener(self, cb: Any) -> None:
            registered.remove(cb)

    def _cb(target: Any) -> None:
        return None

    unsubscribe = capabilities.add_load_listener(WithRemover(), _cb)
    assert unsubscribe is not None and registered == [_cb]
    unsubscribe()
    assert registered == []
    assert capabilities.add_load_listener(object(), _cb) is None
