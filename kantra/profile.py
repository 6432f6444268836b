"""Analysis profiles: loading profile files and applying them to analysis settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

PROFILES = os.path.join(".konveyor", "profiles")

SOURCE_ONLY_ANALYSIS_MODE = "source-only"
FULL_ANALYSIS_MODE = "full"

TARGET_TECHNOLOGY_LABEL = "konveyor.io/target"
SOURCE_TECHNOLOGY_LABEL = "konveyor.io/source"

_PROFILE_FILE = "profile.yaml"


class ProfileError(ValueError):
    """Raised when a profile cannot be read or applied."""


@dataclass
class Repository:
    """A source repository of an application in the Hub."""

    url: str = ""
    branch: str = ""


@dataclass
class Application:
    """An application in the Hub."""

    id: int = 0
    name: str = ""
    repository: Repository | None = None
    binary: str = ""


@dataclass
class Resource:
    """A reference to a Hub resource by id."""

    id: int = 0


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ProfileError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _string_list(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProfileError(f"{what} must be a list, got {type(value).__name__}")
    return [str(item) for item in value]


@dataclass
class AnalysisMode:
    """Whether dependencies are analysed."""

    with_deps: bool = False


@dataclass
class PackageSelector:
    """Packages included in or excluded from the analysis."""

    included: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)


@dataclass
class AnalysisScope:
    """Scope of the analysis."""

    with_known_libs: bool = False
    packages: PackageSelector = field(default_factory=PackageSelector)


@dataclass
class LabelSelector:
    """Rule labels included in or excluded from the analysis."""

    included: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)


@dataclass
class AnalysisRules:
    """Rule selection of a profile."""

    labels: LabelSelector = field(default_factory=LabelSelector)


@dataclass
class AnalysisProfile:
    """An analysis profile as stored in ``profile.yaml``."""

    id: int = 0
    name: str = ""
    mode: AnalysisMode = field(default_factory=AnalysisMode)
    scope: AnalysisScope = field(default_factory=AnalysisScope)
    rules: AnalysisRules = field(default_factory=AnalysisRules)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AnalysisProfile":
        """Build a profile from parsed YAML data; unknown keys are ignored."""
        data = _mapping(data, "profile")
        mode = _mapping(data.get("mode"), "mode")
        scope = _mapping(data.get("scope"), "scope")
        packages = _mapping(scope.get("packages"), "scope.packages")
        rules = _mapping(data.get("rules"), "rules")
        labels = _mapping(rules.get("labels"), "rules.labels")
        try:
            profile_id = int(data.get("id") or 0)
        except (TypeError, ValueError) as exc:
            raise ProfileError(f"invalid profile id: {data.get('id')!r}") from exc
        name = data.get("name")
        return cls(
            id=profile_id,
            name="" if name is None else str(name),
            mode=AnalysisMode(with_deps=bool(mode.get("withDeps", False))),
            scope=AnalysisScope(
                with_known_libs=bool(scope.get("withKnownLibs", False)),
                packages=PackageSelector(
                    included=_string_list(packages.get("included"), "scope.packages.included"),
                    excluded=_string_list(packages.get("excluded"), "scope.packages.excluded"),
                ),
            ),
            rules=AnalysisRules(
                labels=LabelSelector(
                    included=_string_list(labels.get("included"), "rules.labels.included"),
                    excluded=_string_list(labels.get("excluded"), "rules.labels.excluded"),
                )
            ),
        )


@dataclass
class ProfileSettings:
    """Analysis settings that a profile may fill in."""

    input: str = ""
    mode: str = ""
    analyze_known_libraries: bool = False
    incident_selector: str = ""
    label_selector: str = ""
    rules: list[str] = field(default_factory=list)
    enable_default_rulesets: bool = False


@dataclass
class Flag:
    """A command-line flag value and whether the user set it explicitly."""

    value: Any = None
    changed: bool = False


def _is_yaml_name(name: str) -> bool:
    lowered = name.lower()
    return lowered.endswith(".yaml") or lowered.endswith(".yml")


def _contains_yaml(directory: str) -> bool:
    with os.scandir(directory) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            if _contains_yaml(entry.path):
                return True
        elif _is_yaml_name(entry.name):
            return True
    return False


def profile_has_rules(rules_dir: str) -> bool:
    """Return True if a YAML file exists anywhere under ``rules_dir``.

    The search stops at the first unreadable entry.
    """
    if not rules_dir:
        return False
    try:
        if not os.path.isdir(rules_dir) or os.path.islink(rules_dir):
            os.lstat(rules_dir)
            return _is_yaml_name(os.path.basename(rules_dir))
        return _contains_yaml(rules_dir)
    except OSError:
        return False


def unmarshal_profile(path: str) -> AnalysisProfile | None:
    """Read a profile file; return None when no path is given."""
    if not path:
        return None
    with open(path, encoding="utf-8") as handle:
        content = handle.read()
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ProfileError(str(exc)) from exc
    return AnalysisProfile.from_dict(data)


def _changed(flags: Mapping[str, Flag], name: str) -> bool:
    flag = flags.get(name)
    return flag is not None and flag.changed


def set_settings_from_profile(
    path: str, flags: Mapping[str, Flag], settings: ProfileSettings
) -> None:
    """Fill in ``settings`` from the profile at ``path`` where flags were not set."""
    profile = unmarshal_profile(path)
    konveyor_index = path.find(".konveyor")
    if konveyor_index == -1 or profile is None:
        raise ProfileError(f"profile path does not contain .konveyor directory: {path}")
    location_dir = path[: max(konveyor_index - 1, 0)]

    if not _changed(flags, "input"):
        settings.input = location_dir
    if not _changed(flags, "mode"):
        settings.mode = FULL_ANALYSIS_MODE if profile.mode.with_deps else SOURCE_ONLY_ANALYSIS_MODE
    if not _changed(flags, "analyze-known-libraries") and profile.scope.with_known_libs:
        settings.analyze_known_libraries = True
    if not _changed(flags, "incident-selector"):
        settings.incident_selector = build_incident_selector(profile.scope.packages)
    if not _changed(flags, "label-selector"):
        settings.label_selector = build_label_selector(profile.rules.labels)

    if _changed(flags, "enable-default-rulesets"):
        value = flags["enable-default-rulesets"].value
        if not isinstance(value, bool):
            raise ProfileError(
                f"error reading enable-default-rulesets: value {value!r} is not a bool"
            )
        settings.enable_default_rulesets = value
    else:
        settings.enable_default_rulesets = (
            _changed(flags, "target")
            or _changed(flags, "source")
            or profile_has_default_konveyor_labels(profile)
        )

    if not _changed(flags, "rules"):
        settings.rules.extend(get_rules_in_profile(os.path.dirname(path)))


def build_incident_selector(packages: PackageSelector) -> str:
    """Build an incident selector expression from package inclusions and exclusions."""
    included = [f"package={pkg.strip()}" for pkg in packages.included if pkg.strip()]
    excluded = [f"!package={pkg.strip()}" for pkg in packages.excluded if pkg.strip()]
    selector = " || ".join(included)
    if excluded:
        excluded_expr = " && ".join(excluded)
        selector = f"({selector}) && {excluded_expr}" if selector else excluded_expr
    return selector


def build_label_selector(labels: LabelSelector) -> str:
    """Build a label selector expression from label inclusions and exclusions."""
    included = [label.strip() for label in labels.included if label.strip()]
    excluded = [f"!{label.strip()}" for label in labels.excluded if label.strip()]
    selector = f"({' || '.join(included)})" if included else ""
    if excluded:
        excluded_expr = " && ".join(excluded)
        selector = f"{selector} && {excluded_expr}" if selector else excluded_expr
    return selector


def get_rules_in_profile(profile_dir: str) -> list[str]:
    """Return the rule directories under ``<profile_dir>/rules``, sorted by name."""
    if not profile_dir:
        return []
    rules_dir = os.path.join(profile_dir, "rules")
    try:
        is_dir = os.path.isdir(rules_dir)
        os.stat(rules_dir)
    except FileNotFoundError:
        return []
    if not is_dir:
        raise ProfileError(f"rules path {rules_dir} is not a directory")
    if not profile_has_rules(rules_dir):
        return []
    with os.scandir(rules_dir) as iterator:
        names = sorted(entry.name for entry in iterator if entry.is_dir(follow_symlinks=False))
    return [os.path.join(rules_dir, name) for name in names]


def find_single_profile(profiles_dir: str) -> str | None:
    """Return the path of the only profile in ``profiles_dir``, or None if not exactly one."""
    try:
        is_dir = os.path.isdir(profiles_dir)
        os.stat(profiles_dir)
    except FileNotFoundError:
        return None
    if not is_dir:
        raise ProfileError(f"found profiles path {profiles_dir} is not a directory")
    with os.scandir(profiles_dir) as iterator:
        candidates = sorted(
            entry.name
            for entry in iterator
            if entry.is_dir(follow_symlinks=False)
            and os.path.exists(os.path.join(entry.path, _PROFILE_FILE))
        )
    if len(candidates) != 1:
        return None
    return os.path.join(profiles_dir, candidates[0], _PROFILE_FILE)


def profile_has_default_konveyor_labels(profile: AnalysisProfile | None) -> bool:
    """Return True if the profile includes a konveyor source or target label."""
    if profile is None:
        return False
    for label in profile.rules.labels.included:
        label = label.strip()
        for base in (TARGET_TECHNOLOGY_LABEL, SOURCE_TECHNOLOGY_LABEL):
            if label == base or label.startswith(base + "="):
                return True
    return False