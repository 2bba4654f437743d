"""OpenGL loader generator.

Reads the Khronos OpenGL XML registry (gl.xml) and emits declarations and
lazy-loading entry points for exactly the API, version, profile and
extensions requested.

Usage:
    python glgen.py gl.xml --api gl --ver 4.5 --profile core --exts ARB_debug_output
"""

import argparse
import re
import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, NamedTuple, TypeVar

# ===--- CLI config contracts ---=== #


class ApiVersion(NamedTuple):
    major: int
    minor: int
    valid: bool = True

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


INVALID_VERSION = ApiVersion(0, 0, valid=False)

VALID_APIS = ("gl", "gles1", "gles2", "glsc2")
VALID_PROFILES = ("core", "compatibility")
DEFAULT_API = "gl"
DEFAULT_PROFILE = "compatibility"
DEFAULT_FILENAME = "gl"
DEFAULT_GENERATOR = "c_noload"
DEFAULT_API_VERSIONS = {
    "gl": ApiVersion(4, 0),
    "gles1": ApiVersion(1, 0),
    "gles2": ApiVersion(2, 0),
    "glsc2": ApiVersion(2, 0),
}

VALID_ERROR_CODES = {
    "INVALID_API",
    "INVALID_VERSION",
    "INVALID_PROFILE",
    "INVALID_GENERATOR",
    "INVALID_EXTENSION_NAME",
    "PATH_NOT_FOUND",
    "FILTER_WITHOUT_LIST",
    "CONFLICT_GENERATE_DISCOVERY",
    "UNRESOLVED_EXTENSIONS",
}
_VERSION_RE = re.compile(r"^([0-9]+)\.([0-9]+)$")
_EXT_NAME_RE = re.compile(r"^GL_[A-Za-z0-9]+_[A-Za-z0-9_]+$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def parse_api_version(raw: str | None) -> ApiVersion:
    """Parse "major.minor", returning INVALID_VERSION for anything else."""
    if raw is None:
        return INVALID_VERSION
    match = _VERSION_RE.match(raw.strip())
    if match is None:
        return INVALID_VERSION
    return ApiVersion(int(match.group(1)), int(match.group(2)))


def parse_version(raw: str) -> ApiVersion:
    version = parse_api_version(raw)
    if not version.valid:
        raise ConfigError(
            "INVALID_VERSION",
            f"Invalid version: {raw!r}",
            "Pass --ver as <major>.<minor>, for example --ver 4.5.",
        )
    return version


def validate_api(api: str) -> str:
    if api in VALID_APIS:
        return api
    raise ConfigError(
        "INVALID_API",
        f"Invalid API name: {api}",
        f"Use one of: {', '.join(VALID_APIS)}.",
    )


def validate_profile(profile: str) -> str:
    if profile in VALID_PROFILES:
        return profile
    raise ConfigError(
        "INVALID_PROFILE",
        f"Invalid profile: {profile}",
        'Profile must be either "core" or "compatibility".',
    )


def validate_extension_name(name: str) -> str:
    if _EXT_NAME_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_EXTENSION_NAME",
        f"Invalid extension name: {name}",
        "Extension names look like ARB_debug_output or GL_KHR_debug.",
    )


def validate_path_exists(path: Path | None, flag: str) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            "Pass the path to gl.xml as the first argument.",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        "Fetch gl.xml from https://github.com/KhronosGroup/OpenGL-Registry.",
    )


@dataclass(frozen=True)
class ResolutionRequest:
    """What to resolve: one (API, version, profile, extension set) tuple."""

    api: str
    version: ApiVersion
    profile: str
    extensions: frozenset[str] = frozenset()


@dataclass(frozen=True)
class GenerateConfig:
    registry: Path
    api: str
    version: ApiVersion
    profile: str
    extensions: frozenset[str]
    generator: str
    filename: str
    output_dir: Path

    def request(self) -> ResolutionRequest:
        return ResolutionRequest(
            api=self.api,
            version=self.version,
            profile=self.profile,
            extensions=self.extensions,
        )


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    api: str
    filter_text: str | None
    registry: Path


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate OpenGL loader code from the Khronos XML registry"
    )

    parser.add_argument("registry", type=Path, help="path to gl.xml")
    parser.add_argument("--api", type=str, default=DEFAULT_API)
    parser.add_argument("--ver", type=str, default=None)
    parser.add_argument("--profile", type=str, default=DEFAULT_PROFILE)
    parser.add_argument("--exts", action="append", default=None)
    parser.add_argument("--filename", type=str, default=DEFAULT_FILENAME)
    parser.add_argument("--generator", type=str, default=DEFAULT_GENERATOR)
    parser.add_argument("--output-dir", type=Path, default=Path("."))

    discovery_group = parser.add_mutually_exclusive_group()
    discovery_group.add_argument("--list-versions", action="store_true", default=False)
    discovery_group.add_argument(
        "--list-extensions", action="store_true", default=False
    )

    parser.add_argument("--filter", type=str, default=None)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def normalize_extensions(raw_extensions: list[str] | None) -> frozenset[str]:
    """Split comma-separated --exts values and add the GL_ prefix where missing."""
    if not raw_extensions:
        return frozenset()
    names: set[str] = set()
    for entry in raw_extensions:
        for token in entry.split(","):
            token = token.strip()
            if not token:
                continue
            if not token.startswith("GL_"):
                token = "GL_" + token
            names.add(validate_extension_name(token))
    return frozenset(names)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    has_generate_input = bool(args.ver or args.exts)
    has_discovery_command = bool(args.list_versions or args.list_extensions)

    if args.filter and not args.list_extensions:
        raise ConfigError(
            "FILTER_WITHOUT_LIST",
            "--filter requires --list-extensions.",
            "Add --list-extensions or remove --filter.",
        )

    if has_generate_input and has_discovery_command:
        raise ConfigError(
            "CONFLICT_GENERATE_DISCOVERY",
            "Generate flags cannot be combined with discovery flags.",
            "Choose either generate mode or one discovery command.",
        )

    api = validate_api(args.api)
    registry = validate_path_exists(args.registry, "registry")

    if has_discovery_command:
        command = "list-versions" if args.list_versions else "list-extensions"
        return DiscoveryConfig(
            command=command,
            api=api,
            filter_text=args.filter,
            registry=registry,
        )

    version = parse_version(args.ver) if args.ver else DEFAULT_API_VERSIONS[api]
    profile = validate_profile(args.profile)
    if args.generator not in EMITTERS:
        raise ConfigError(
            "INVALID_GENERATOR",
            f"Invalid generator: {args.generator}",
            f"Use one of: {', '.join(sorted(EMITTERS))}.",
        )

    return GenerateConfig(
        registry=registry,
        api=api,
        version=version,
        profile=profile,
        extensions=normalize_extensions(args.exts),
        generator=args.generator,
        filename=args.filename,
        output_dir=args.output_dir,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Registry errors ---=== #


class RegistryError(Exception):
    """Base class for problems found in the registry itself."""


class RegistryLoadError(RegistryError):
    """An entity definition is malformed or incomplete."""


class RegistryReferenceError(RegistryError):
    """A referenced name has no definition usable for the target API."""


def _describe(element: ET.Element) -> str:
    name = element.get("name")
    if name:
        return f'<{element.tag} name="{name}">'
    return f"<{element.tag}>"


# ===--- Entity records ---=== #


ANY_API = ""


@dataclass(frozen=True)
class TypeInfo:
    name: str
    cdecl: str
    requires: str = ""
    api: str = ANY_API


@dataclass(frozen=True)
class EnumerantInfo:
    name: str
    value: str
    suffix: str = ""
    alias: str = ""
    api: str = ANY_API


@dataclass(frozen=True)
class GroupInfo:
    name: str
    enums: tuple[EnumerantInfo, ...]
    api: str = ANY_API


@dataclass(frozen=True)
class ParamInfo:
    """One command parameter.

    Attributes:
        name: Parameter name.
        ctype: Full C type, e.g. "const GLfloat *".
        referenced_type: API type named inside ctype ("GLfloat"), or "".
        group: Enumerant group the legal values belong to, or "".
        length: Free-form len= annotation, never interpreted.
    """

    name: str
    ctype: str
    referenced_type: str = ""
    group: str = ""
    length: str = ""


@dataclass(frozen=True)
class CommandInfo:
    """One API command, e.g. glBindTexture.

    Attributes:
        name: Command name.
        prototype: C prototype up to and including the name.
        return_ctype: Trimmed C return type, e.g. "const GLubyte *".
        referenced_type: API type named in the return type, or "".
        params: Parameters in declaration order.
        alias: Command this one is an alias of, or "".
        vecequiv: Vector-equivalent command, or "".
        api: API qualifier, "" for every API.
    """

    name: str
    prototype: str
    return_ctype: str
    referenced_type: str = ""
    params: tuple[ParamInfo, ...] = ()
    alias: str = ""
    vecequiv: str = ""
    api: str = ANY_API


# ===--- Entity store ---=== #


RecordT = TypeVar("RecordT", TypeInfo, EnumerantInfo, GroupInfo, CommandInfo)


class ApiEntity(Generic[RecordT]):
    """Every variant of one named entity, keyed by API qualifier.

    The same entity can be defined differently per API (an enumerant may
    have one value in gl and another in gles2). A variant for a specific API
    replaces earlier variants for that API; a qualifier-less variant is kept
    only if it is the first one seen and is used when the requested API has
    no variant of its own.
    """

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        self.variants: dict[str, RecordT] = {}
        self.processed = False

    def add(self, record: RecordT) -> None:
        if record.api == ANY_API:
            self.variants.setdefault(ANY_API, record)
        else:
            self.variants[record.api] = record

    def get(self, api: str) -> RecordT:
        record = self.variants.get(api)
        if record is None:
            record = self.variants.get(ANY_API)
        if record is None:
            raise RegistryReferenceError(
                f"Failed to find {self.kind} {self.name} for api {api}"
            )
        return record

    def mark_processed(self) -> None:
        self.processed = True


class EntityStore(Generic[RecordT]):
    """Name -> ApiEntity map for one entity kind."""

    def __init__(self, kind: str):
        self.kind = kind
        self._entities: dict[str, ApiEntity[RecordT]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def names(self) -> list[str]:
        return list(self._entities)

    def add(self, record: RecordT) -> None:
        entity = self._entities.get(record.name)
        if entity is None:
            entity = ApiEntity(self.kind, record.name)
            self._entities[record.name] = entity
        entity.add(record)

    def entity(self, name: str) -> ApiEntity[RecordT]:
        entity = self._entities.get(name)
        if entity is None:
            raise RegistryReferenceError(f"Reference to undefined {self.kind} {name}")
        return entity

    def resolve(self, name: str, api: str) -> RecordT:
        return self.entity(name).get(api)

    def mark_processed(self, name: str) -> None:
        self.entity(name).mark_processed()

    def is_processed(self, name: str) -> bool:
        return self.entity(name).processed


@dataclass(frozen=True)
class Registry:
    """Entity stores loaded from one registry for one target API.

    The API is part of the registry because groups resolve their member
    enumerants eagerly while loading.
    """

    api: str
    types: EntityStore[TypeInfo]
    enums: EntityStore[EnumerantInfo]
    commands: EntityStore[CommandInfo]
    groups: EntityStore[GroupInfo]


# ===--- Registry loading ---=== #


def parse_type(element: ET.Element) -> TypeInfo:
    """Build a TypeInfo from a <type> element.

    The declaration is rebuilt from text and children in document order, so
    reordering children changes the emitted C.
    """
    name = element.get("name", "")
    parts = [element.text or ""]
    for child in element:
        if child.tag == "name":
            name = child.text or ""
            parts.append(" " + name)
        elif child.tag == "apientry":
            parts.append(" GL_APIENTRY ")
        else:
            raise RegistryLoadError(
                f'Unexpected element "{child.tag}" in type definition {_describe(element)}'
            )
        parts.append(child.tail or "")
    if not name:
        raise RegistryLoadError('Type missing "name" attribute')
    return TypeInfo(
        name=name,
        cdecl="".join(parts),
        requires=element.get("requires", ""),
        api=element.get("api", ANY_API),
    )


def parse_enumerant(element: ET.Element) -> EnumerantInfo:
    name = element.get("name", "")
    value = element.get("value", "")
    if not name or not value:
        raise RegistryLoadError(
            f'Enumerant missing "name" or "value" attribute: {_describe(element)}'
        )
    return EnumerantInfo(
        name=name,
        value=value,
        suffix=element.get("type", ""),
        alias=element.get("alias", ""),
        api=element.get("api", ANY_API),
    )


def parse_group(
    element: ET.Element,
    enums: EntityStore[EnumerantInfo],
    api: str,
) -> GroupInfo:
    name = element.get("name", "")
    if not name:
        raise RegistryLoadError('Group missing "name" attribute')
    members: list[EnumerantInfo] = []
    for ref in element.findall("enum"):
        ref_name = ref.get("name")
        if not ref_name:
            raise RegistryLoadError(f"Enum reference missing name attribute in group {name}")
        if ref_name not in enums:
            raise RegistryReferenceError(
                f"Reference to undefined enum {ref_name} in group {name}"
            )
        members.append(enums.resolve(ref_name, api))
    return GroupInfo(name=name, enums=tuple(members))


def parse_param(element: ET.Element) -> ParamInfo:
    name = ""
    referenced_type = ""
    ctype_parts = [element.text or ""]
    for child in element:
        if child.tag == "ptype":
            referenced_type = child.text or ""
            ctype_parts.append(referenced_type)
        elif child.tag == "name":
            name = child.text or ""
        else:
            raise RegistryLoadError(
                f'Unknown tag "{child.tag}" in parameter {_describe(element)}'
            )
        ctype_parts.append(child.tail or "")
    return ParamInfo(
        name=name,
        ctype="".join(ctype_parts).strip(),
        referenced_type=referenced_type,
        group=element.get("group", ""),
        length=element.get("len", ""),
    )


def parse_command(element: ET.Element) -> CommandInfo:
    proto = element.find("proto")
    if proto is None:
        raise RegistryLoadError("Command missing <proto> element")

    name = ""
    referenced_type = ""
    prototype_parts = [proto.text or ""]
    return_parts = [proto.text or ""]

    for child in proto:
        text = child.text or ""
        if child.tag == "ptype":
            referenced_type = text
            return_parts.append(text)
            prototype_parts.append(text)
        elif child.tag == "name":
            name = text
            prototype_parts.append(text)
        else:
            raise RegistryLoadError(
                f'Unknown tag "{child.tag}" in command prototype {name or "<unnamed>"}'
            )
        tail = child.tail or ""
        return_parts.append(tail)
        prototype_parts.append(tail)

    if not name:
        raise RegistryLoadError("Command prototype missing <name> element")

    alias_el = element.find("alias")
    vecequiv_el = element.find("vecequiv")
    return CommandInfo(
        name=name,
        prototype="".join(prototype_parts),
        return_ctype="".join(return_parts).strip(),
        referenced_type=referenced_type,
        params=tuple(parse_param(p) for p in element.findall("param")),
        alias=alias_el.get("name", "") if alias_el is not None else "",
        vecequiv=vecequiv_el.get("name", "") if vecequiv_el is not None else "",
        api=element.get("api", ANY_API),
    )


def _section_children(root: ET.Element, section: str, tag: str) -> list[ET.Element]:
    container = root.find(section)
    if container is None:
        return []
    return container.findall(tag)


def load_registry(root: ET.Element, api: str) -> Registry:
    """Populate fresh entity stores from a parsed registry.

    Enumerants are loaded before groups because groups resolve their members
    for ``api`` while loading.

    Args:
        root: Registry XML root element.
        api: Target API name, e.g. "gl".

    Returns:
        Registry holding the type, enumerant, command and group stores.

    Raises:
        RegistryLoadError: An entity definition is malformed.
        RegistryReferenceError: A group member names an unknown enumerant.
    """
    types: EntityStore[TypeInfo] = EntityStore("type")
    enums: EntityStore[EnumerantInfo] = EntityStore("enumerant")
    commands: EntityStore[CommandInfo] = EntityStore("command")
    groups: EntityStore[GroupInfo] = EntityStore("group")

    for element in _section_children(root, "types", "type"):
        types.add(parse_type(element))
    for element in _section_children(root, "commands", "command"):
        commands.add(parse_command(element))
    for block in root.findall("enums"):
        for element in block.findall("enum"):
            enums.add(parse_enumerant(element))
    for element in _section_children(root, "groups", "group"):
        groups.add(parse_group(element, enums, api))

    return Registry(api=api, types=types, enums=enums, commands=commands, groups=groups)


# ===--- Feature and extension deltas ---=== #


ENTITY_KINDS = ("type", "enum", "command", "group")
DELTA_ACTIONS = ("require", "remove")


@dataclass(frozen=True)
class Delta:
    """One require/remove entry, flattened out of its enclosing block.

    profile and api are copied from the enclosing <require>/<remove> element.
    inferred_from names the required command that dragged this entry in, and
    is empty for entries written in the registry.
    """

    action: str
    kind: str
    name: str
    profile: str = ""
    api: str = ""
    inferred_from: str = ""


@dataclass(frozen=True)
class FeatureBlock:
    name: str
    api: str
    version: ApiVersion
    deltas: tuple[Delta, ...]


@dataclass(frozen=True)
class ExtensionBlock:
    name: str
    supported: str
    deltas: tuple[Delta, ...]


def parse_deltas(block: ET.Element) -> tuple[Delta, ...]:
    deltas: list[Delta] = []
    for operation in block:
        if operation.tag not in DELTA_ACTIONS:
            raise RegistryLoadError(
                f'Unexpected element "{operation.tag}" in {_describe(block)}'
            )
        profile = operation.get("profile", "")
        api = operation.get("api", "")
        for ref in operation:
            if ref.tag not in ENTITY_KINDS:
                raise RegistryLoadError(
                    f'Unexpected element "{ref.tag}" in {operation.tag} of {_describe(block)}'
                )
            name = ref.get("name", "")
            if not name:
                raise RegistryLoadError(
                    f"{ref.tag} missing name attribute in {_describe(block)}"
                )
            deltas.append(Delta(operation.tag, ref.tag, name, profile, api))
    return tuple(deltas)


def collect_feature_blocks(root: ET.Element, api: str) -> list[FeatureBlock]:
    """Return the feature blocks for ``api`` in ascending version order.

    The registry does not promise any particular order for <feature>
    elements, so they are sorted; blocks with equal versions keep document
    order.
    """
    blocks: list[FeatureBlock] = []
    for feature in root.findall("feature"):
        feature_api = feature.get("api")
        if not feature_api:
            raise RegistryLoadError(f"Feature missing api attribute: {_describe(feature)}")
        if feature_api != api:
            continue
        version = parse_api_version(feature.get("number"))
        if not version.valid:
            raise RegistryLoadError(
                f"Feature {_describe(feature)} has invalid number {feature.get('number')!r}"
            )
        blocks.append(
            FeatureBlock(
                name=feature.get("name", ""),
                api=feature_api,
                version=version,
                deltas=parse_deltas(feature),
            )
        )
    return sorted(blocks, key=lambda b: b.version)


def select_feature_blocks(
    blocks: list[FeatureBlock], version: ApiVersion
) -> list[FeatureBlock]:
    if not version.valid:
        raise ConfigError(
            "INVALID_VERSION",
            "Cannot select features for an invalid version.",
            "Pass the version as <major>.<minor>, for example 4.5.",
        )
    selected: list[FeatureBlock] = []
    for block in blocks:
        if block.version > version:
            break
        selected.append(block)
    return selected


def collect_extension_blocks(root: ET.Element) -> list[ExtensionBlock]:
    blocks: list[ExtensionBlock] = []
    for ext in _section_children(root, "extensions", "extension"):
        name = ext.get("name", "")
        if not name:
            raise RegistryLoadError('Extension missing "name" attribute')
        supported = ext.get("supported", "")
        if not supported:
            raise RegistryLoadError(f'Extension {name} missing "supported" attribute')
        blocks.append(ExtensionBlock(name=name, supported=supported, deltas=parse_deltas(ext)))
    return blocks


def extension_supports_api(ext: ExtensionBlock, api: str) -> bool:
    """Return True if the extension's supported= pattern matches the whole API name."""
    try:
        return re.fullmatch(ext.supported, api) is not None
    except re.error as err:
        raise RegistryLoadError(
            f"Extension {ext.name} has malformed supported pattern {ext.supported!r}: {err}"
        ) from err


# ===--- Requirement resolution ---=== #


@dataclass
class RequiredSets:
    """Names that must be declared, one set per entity kind."""

    types: set[str] = field(default_factory=set)
    groups: set[str] = field(default_factory=set)
    enums: set[str] = field(default_factory=set)
    commands: set[str] = field(default_factory=set)

    def for_kind(self, kind: str) -> set[str]:
        if kind == "type":
            return self.types
        if kind == "group":
            return self.groups
        if kind == "enum":
            return self.enums
        if kind == "command":
            return self.commands
        raise ValueError(f"Unknown entity kind: {kind}")


def infer_command_requirements(command: CommandInfo) -> list[tuple[str, str]]:
    """Return the (kind, name) pairs a required command drags in.

    Feature blocks rarely name types or groups directly; they come along
    with the command signatures that use them.
    """
    inferred: list[tuple[str, str]] = []
    if command.referenced_type:
        inferred.append(("type", command.referenced_type))
    for param in command.params:
        if param.referenced_type:
            inferred.append(("type", param.referenced_type))
        if param.group:
            inferred.append(("group", param.group))
    return inferred


def _delta_applies(delta: Delta, request: ResolutionRequest) -> bool:
    if delta.profile and delta.profile != request.profile:
        return False
    if delta.api and delta.api != request.api:
        return False
    return True


def expand_deltas(
    deltas: Iterable[Delta],
    registry: Registry,
    request: ResolutionRequest,
) -> list[Delta]:
    """Filter deltas for the request and spell out command inference.

    Deltas are dropped when their block names another profile or another
    API; gl.xml gates some extension require blocks by api= alone.

    Each applicable require-command delta is followed by one require delta
    per inferred type or group, tagged with inferred_from. Remove deltas are
    passed through as written, so they never reach inferred entries.

    Raises:
        RegistryReferenceError: A required command has no variant for the API.
    """
    expanded: list[Delta] = []
    for delta in deltas:
        if not _delta_applies(delta, request):
            continue
        expanded.append(delta)
        if delta.action != "require" or delta.kind != "command":
            continue
        command = registry.commands.resolve(delta.name, request.api)
        for kind, name in infer_command_requirements(command):
            expanded.append(Delta("require", kind, name, inferred_from=delta.name))
    return expanded


def apply_deltas(deltas: Iterable[Delta], required: RequiredSets) -> None:
    for delta in deltas:
        names = required.for_kind(delta.kind)
        if delta.action == "require":
            names.add(delta.name)
        else:
            names.discard(delta.name)


def apply_features(
    blocks: list[FeatureBlock],
    registry: Registry,
    request: ResolutionRequest,
    required: RequiredSets,
) -> list[FeatureBlock]:
    selected = select_feature_blocks(blocks, request.version)
    for block in selected:
        apply_deltas(expand_deltas(block.deltas, registry, request), required)
    return selected


def apply_extensions(
    blocks: list[ExtensionBlock],
    registry: Registry,
    request: ResolutionRequest,
    required: RequiredSets,
) -> tuple[str, ...]:
    """Apply the requested extensions, in registry order, without version gating.

    An extension requested but not supported by the target API is reported
    and skipped. Any requested name that matches no extension at all is a
    configuration error.

    Returns:
        Names of the extensions whose deltas were applied.

    Raises:
        ConfigError: UNRESOLVED_EXTENSIONS listing the unmatched names.
    """
    pending = set(request.extensions)
    unsupported: set[str] = set()
    applied: list[str] = []

    for ext in blocks:
        if ext.name not in pending:
            continue
        if not extension_supports_api(ext, request.api):
            if ext.name not in unsupported:
                print(
                    f"WARNING: extension {ext.name} requested, "
                    f"but not supported by API {request.api}",
                    file=sys.stderr,
                )
                unsupported.add(ext.name)
            continue
        apply_deltas(expand_deltas(ext.deltas, registry, request), required)
        pending.discard(ext.name)
        unsupported.discard(ext.name)
        applied.append(ext.name)

    leftover = pending - unsupported
    if leftover:
        raise ConfigError(
            "UNRESOLVED_EXTENSIONS",
            f"Invalid extensions specified: {', '.join(sorted(leftover))}",
            "Use --list-extensions to see the extensions in the registry.",
        )
    return tuple(applied)


def resolve_required(
    root: ET.Element,
    registry: Registry,
    request: ResolutionRequest,
) -> RequiredSets:
    """Compute the required names for a request: features first, then extensions."""
    required = RequiredSets()
    apply_features(collect_feature_blocks(root, request.api), registry, request, required)
    apply_extensions(collect_extension_blocks(root), registry, request, required)
    return required


# ===--- Emitters ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Filename written, e.g. "gl.h".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


class Emitter:
    """Receives resolved entities in declaration order.

    Call order is fixed: start, every type (dependencies first), every
    group, every enumerant, every command, finish.
    """

    def start(
        self,
        output_name: str,
        api_name: str,
        profile: str,
        version_major: int,
        version_minor: int,
    ) -> None:
        pass

    def emit_type(self, info: TypeInfo) -> None:
        pass

    def emit_enum_group(self, info: GroupInfo) -> None:
        pass

    def emit_enumerant(self, info: EnumerantInfo) -> None:
        pass

    def emit_command(self, info: CommandInfo) -> None:
        pass

    def finish(self) -> tuple[FileWriteResult, ...]:
        return ()


HEADER_PREAMBLE = """\
/* Generated by glgen. Do not edit. */
#ifndef GLGEN_HEADER_
#define GLGEN_HEADER_
#if defined(__gl_h_) || defined(__GL_H__) || defined(__glext_h_) || \\
    defined(__GLEXT_H_) || defined(__gltypes_h_) || defined(__glcorearb_h_) || \\
    defined(__gl_glcorearb_h_)
#error This header must be included before any other OpenGL header.
#endif

#define __gl_h_ 1
#define __gl32_h_ 1
#define __gl31_h_ 1
#define __GL_H__ 1
#define __glext_h_ 1
#define __GLEXT_H_ 1
#define __gltypes_h_ 1
#define __glcorearb_h_ 1
#define __gl_glcorearb_h_ 1

#if defined(_WIN32)
#define WIN32_LEAN_AND_MEAN
#include <windows.h>
#define GL_APIENTRY APIENTRY
#else
#define GL_APIENTRY
#endif

#if defined(__cplusplus)
extern "C" {
#endif
"""

SOURCE_PREAMBLE = """\
/* Generated by glgen. Do not edit. */
#include <assert.h>
#if defined(_WIN32)
static void *GlgenGetProcAddress(const char *name) {
  static HMODULE opengl32 = NULL;
  static PROC(WINAPI *wgl_get_proc_address)(LPCSTR) = NULL;
  void *ptr;
  if (opengl32 == NULL) {
    opengl32 = LoadLibraryA("opengl32.dll");
    assert(opengl32);
  }
  if (wgl_get_proc_address == NULL) {
    wgl_get_proc_address =
        (PROC(WINAPI *)(LPCSTR))GetProcAddress(opengl32, "wglGetProcAddress");
    assert(wgl_get_proc_address);
  }
  ptr = (void *)wgl_get_proc_address(name);
  /* wglGetProcAddress reports failure with several sentinel values. */
  if (ptr == 0 || ptr == (void *)1 || ptr == (void *)2 || ptr == (void *)3 ||
      ptr == (void *)-1) {
    ptr = (void *)GetProcAddress(opengl32, name);
  }
  return ptr;
}
#elif defined(__APPLE__)
#include <dlfcn.h>
static void *GlgenGetProcAddress(const char *name) {
  static void *lib = NULL;
  if (lib == NULL) {
    lib = dlopen(
        "/System/Library/Frameworks/OpenGL.framework/Versions/Current/OpenGL",
        RTLD_LAZY);
  }
  return lib ? dlsym(lib, name) : NULL;
}
#elif defined(__ANDROID__)
#include <dlfcn.h>
#if GLGEN_API_VER_MAJ == 3
#define GLGEN_GLES_LIB "libGLESv3.so"
#elif GLGEN_API_VER_MAJ == 2
#define GLGEN_GLES_LIB "libGLESv2.so"
#else
#define GLGEN_GLES_LIB "libGLESv1_CM.so"
#endif
static void *GlgenGetProcAddress(const char *name) {
  static void *lib = NULL;
  if (lib == NULL) {
    lib = dlopen(GLGEN_GLES_LIB, RTLD_LAZY);
    assert(lib);
  }
  return lib ? dlsym(lib, name) : NULL;
}
#else
#include <GL/glx.h>
#define GlgenGetProcAddress(name) (*glXGetProcAddressARB)((const GLubyte *)name)
#endif
"""

HEADER_EPILOGUE = """\
#if defined(__cplusplus)
}
#endif
#endif
"""


def format_parameter_lists(command: CommandInfo) -> tuple[str, str]:
    """Return (signature, call argument list) strings for a command."""
    signature = ", ".join(f"{p.ctype} {p.name}" for p in command.params)
    call = ", ".join(p.name for p in command.params)
    return signature, call


def format_command_header(command: CommandInfo) -> list[str]:
    signature, _ = format_parameter_lists(command)
    name = command.name
    lines = [
        "",
        f"typedef {command.return_ctype} (GL_APIENTRY *PFN_{name})({signature});",
        f"extern PFN_{name} _glptr_{name};",
        f"#define {name} _glptr_{name}",
    ]
    if command.alias:
        lines.append(f"#define {command.alias} {name}")
    return lines


def format_command_source(command: CommandInfo, null_driver: bool) -> list[str]:
    signature, call = format_parameter_lists(command)
    name = command.name
    returns_value = command.return_ctype != "void"
    lines = [f"static {command.return_ctype} GL_APIENTRY _impl_{name}({signature}) {{"]
    if null_driver:
        if returns_value:
            lines.append(f"  return ({command.return_ctype})0;")
    else:
        lines.append(
            f'  _glptr_{name} = (PFN_{name})GlgenGetProcAddress("{name}");'
        )
        prefix = "return " if returns_value else ""
        lines.append(f"  {prefix}_glptr_{name}({call});")
    lines.append("}")
    lines.append(f"PFN_{name} _glptr_{name} = _impl_{name};")
    lines.append("")
    return lines


class CEmitter(Emitter):
    """Writes <name>.h and <name>.c.

    Every command pointer starts out aimed at a stub that resolves the real
    entry point on first call. With null_driver the stubs do nothing and
    return zero, which is handy for headless tests.
    """

    def __init__(self, output_dir: Path = Path("."), null_driver: bool = False):
        self.output_dir = Path(output_dir)
        self.null_driver = null_driver
        self.name = ""
        self.header_lines: list[str] = []
        self.source_lines: list[str] = []

    def start(
        self,
        output_name: str,
        api_name: str,
        profile: str,
        version_major: int,
        version_minor: int,
    ) -> None:
        self.name = output_name
        self.header_lines = [
            HEADER_PREAMBLE,
            f'#define GLGEN_API_NAME "{api_name}"',
            f'#define GLGEN_API_PROFILE "{profile}"',
            f"#define GLGEN_API_VER_MAJ {version_major}",
            f"#define GLGEN_API_VER_MIN {version_minor}",
        ]
        self.source_lines = [f'#include "{output_name}.h"']
        if not self.null_driver:
            self.source_lines.append(SOURCE_PREAMBLE)

    def emit_type(self, info: TypeInfo) -> None:
        self.header_lines.append(info.cdecl)

    def emit_enum_group(self, info: GroupInfo) -> None:
        members = ", ".join(e.name for e in info.enums)
        self.header_lines.append(f"/* Group {info.name}: {members} */")

    def emit_enumerant(self, info: EnumerantInfo) -> None:
        self.header_lines.append(f"#define {info.name} {info.value}{info.suffix}")
        if info.alias:
            self.header_lines.append(f"#define {info.alias} {info.value}{info.suffix}")

    def emit_command(self, info: CommandInfo) -> None:
        self.header_lines.extend(format_command_header(info))
        self.source_lines.extend(format_command_source(info, self.null_driver))

    def finish(self) -> tuple[FileWriteResult, ...]:
        self.header_lines.append(HEADER_EPILOGUE)
        return (
            self._write(f"{self.name}.h", self.header_lines),
            self._write(f"{self.name}.c", self.source_lines),
        )

    def _write(self, filename: str, lines: list[str]) -> FileWriteResult:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        content = "\n".join(lines) + "\n"
        file_path = self.output_dir / filename
        file_path.write_text(content, encoding="utf-8")
        return FileWriteResult(
            filename=filename,
            path=file_path.resolve(),
            line_count=content.count("\n"),
            byte_count=len(content.encode("utf-8")),
        )


EMITTERS: dict[str, Callable[[Path], Emitter]] = {
    "c_noload": lambda output_dir: CEmitter(output_dir),
    "c_nulldriver": lambda output_dir: CEmitter(output_dir, null_driver=True),
}


# ===--- Dependency closure and emission ---=== #


BASELINE_TYPES: tuple[str, ...] = ("GLenum", "GLuint", "GLsizei", "GLchar")
"""Types emitted before anything else, in this order.

GLDEBUGPROC's declaration uses these without listing them in requires=
(https://github.com/KhronosGroup/OpenGL-Registry/issues/160). A name that
the registry does not define at all is skipped."""


@dataclass(frozen=True)
class EmissionSummary:
    """Counts of what one emission run handed to the emitter.

    Attributes:
        type_count: Types emitted, baseline and dependencies included.
        group_count: Groups emitted (undefined group names are not counted).
        enum_count: Enumerants emitted.
        command_count: Commands emitted.
        files: Whatever the emitter reported from finish().
    """

    type_count: int
    group_count: int
    enum_count: int
    command_count: int
    files: tuple[FileWriteResult, ...] = ()


def emit_type(
    registry: Registry,
    name: str,
    emitter: Emitter,
    in_progress: set[str] | None = None,
) -> int:
    """Emit a type after the types it requires, at most once per registry.

    Returns:
        Number of types emitted by this call, dependencies included.

    Raises:
        RegistryReferenceError: The type, or a type it requires, has no
            variant for the registry's API.
        RuntimeError: The requires chain loops back on itself.
    """
    info = registry.types.resolve(name, registry.api)
    if registry.types.is_processed(name):
        return 0
    if in_progress is None:
        in_progress = set()
    if name in in_progress:
        raise RuntimeError(f"Dependency cycle in types: {sorted(in_progress)}")
    in_progress.add(name)

    emitted = 0
    if info.requires:
        emitted += emit_type(registry, info.requires, emitter, in_progress)
    emitter.emit_type(info)
    registry.types.mark_processed(name)
    in_progress.discard(name)
    return emitted + 1


def emit_declarations(
    registry: Registry,
    required: RequiredSets,
    request: ResolutionRequest,
    emitter: Emitter,
    output_name: str = DEFAULT_FILENAME,
    baseline_types: tuple[str, ...] = BASELINE_TYPES,
) -> EmissionSummary:
    """Drive the emitter through one complete, dependency-ordered emission.

    Required names are walked in sorted order so the same request always
    produces the same output.

    Raises:
        RegistryReferenceError: A required name cannot be resolved for the API.
        RuntimeError: Propagated from emit_type on a requires cycle.
    """
    api = request.api
    emitter.start(
        output_name, api, request.profile, request.version.major, request.version.minor
    )

    type_count = 0
    for name in baseline_types:
        if name in registry.types:
            type_count += emit_type(registry, name, emitter)
    for name in sorted(required.types):
        type_count += emit_type(registry, name, emitter)

    group_count = 0
    for name in sorted(required.groups):
        # Groups may be referenced without ever being defined.
        if name not in registry.groups:
            continue
        emitter.emit_enum_group(registry.groups.resolve(name, api))
        group_count += 1

    for name in sorted(required.enums):
        emitter.emit_enumerant(registry.enums.resolve(name, api))

    for name in sorted(required.commands):
        emitter.emit_command(registry.commands.resolve(name, api))

    files = emitter.finish() or ()
    return EmissionSummary(
        type_count=type_count,
        group_count=group_count,
        enum_count=len(required.enums),
        command_count=len(required.commands),
        files=tuple(files),
    )


def generate(
    root: ET.Element,
    request: ResolutionRequest,
    emitter: Emitter,
    output_name: str = DEFAULT_FILENAME,
    baseline_types: tuple[str, ...] = BASELINE_TYPES,
) -> tuple[RequiredSets, EmissionSummary]:
    """Load, resolve and emit for one request.

    A fresh Registry is built on every call, so repeated calls with the same
    inputs produce the same emission.
    """
    registry = load_registry(root, request.api)
    required = resolve_required(root, registry, request)
    summary = emit_declarations(
        registry, required, request, emitter, output_name, baseline_types
    )
    return required, summary


# ===--- Discovery commands ---=== #


@dataclass(frozen=True)
class FeatureSummary:
    """One row of the --list-versions table."""

    name: str
    version: ApiVersion
    require_count: int
    remove_count: int


@dataclass(frozen=True)
class ExtensionSummary:
    """One row of the --list-extensions table."""

    name: str
    supported: str
    require_count: int


def gather_feature_summaries(root: ET.Element, api: str) -> list[FeatureSummary]:
    summaries: list[FeatureSummary] = []
    for block in collect_feature_blocks(root, api):
        require_count = sum(1 for d in block.deltas if d.action == "require")
        summaries.append(
            FeatureSummary(
                name=block.name,
                version=block.version,
                require_count=require_count,
                remove_count=len(block.deltas) - require_count,
            )
        )
    return summaries


def gather_extension_summaries(root: ET.Element, api: str) -> list[ExtensionSummary]:
    summaries = [
        ExtensionSummary(
            name=ext.name,
            supported=ext.supported,
            require_count=sum(1 for d in ext.deltas if d.action == "require"),
        )
        for ext in collect_extension_blocks(root)
        if extension_supports_api(ext, api)
    ]
    summaries.sort(key=lambda s: s.name)
    return summaries


def filter_extensions_by_text(
    summaries: list[ExtensionSummary],
    filter_text: str,
) -> list[ExtensionSummary]:
    """Return summaries whose name contains filter_text, ignoring case.

    Empty filter_text returns every summary.
    """
    if not filter_text:
        return list(summaries)
    needle = filter_text.lower()
    return [s for s in summaries if needle in s.name.lower()]


def format_features_table(api: str, summaries: list[FeatureSummary]) -> str:
    lines = [f"{len(summaries)} {api} versions in registry:", ""]
    name_width = max((len(s.name) for s in summaries), default=0)
    for row in summaries:
        lines.append(
            f"  {str(row.version):<6} {row.name.ljust(name_width)}"
            f"  +{row.require_count} / -{row.remove_count}"
        )
    lines.append("")
    return "\n".join(lines)


def format_extensions_table(api: str, summaries: list[ExtensionSummary]) -> str:
    lines = [f"{len(summaries)} {api} extensions in registry:", ""]
    name_width = max((len(s.name) for s in summaries), default=0)
    for row in summaries:
        lines.append(
            f"  {row.name.ljust(name_width)}  {row.require_count:>4} entries"
            f"  supported: {row.supported}"
        )
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    root = ET.parse(config.registry).getroot()

    if config.command == "list-versions":
        output = format_features_table(
            config.api, gather_feature_summaries(root, config.api)
        )
    else:
        summaries = gather_extension_summaries(root, config.api)
        if config.filter_text is not None:
            summaries = filter_extensions_by_text(summaries, config.filter_text)
        output = format_extensions_table(config.api, summaries)
    print(output, end="")


# ===--- Generation pipeline ---=== #


def run_generate(config: GenerateConfig) -> EmissionSummary:
    """Run parse -> load -> resolve -> emit for a GenerateConfig.

    Raises:
        OSError: Registry not readable or output not writable.
        ET.ParseError: Malformed XML.
        RegistryError: Malformed or inconsistent registry content.
        ConfigError: Requested extensions missing from the registry.
        RuntimeError: Requires cycle among types.
    """
    request = config.request()
    print(f"Parsing: {config.registry}")
    root = ET.parse(config.registry).getroot()

    registry = load_registry(root, request.api)
    print(
        f"  Registry: {len(registry.types)} types, {len(registry.enums)} enumerants, "
        f"{len(registry.commands)} commands, {len(registry.groups)} groups"
    )

    required = resolve_required(root, registry, request)
    print(
        f"  Required for {request.api} {request.version} ({request.profile}): "
        f"{len(required.types)} types, {len(required.enums)} enumerants, "
        f"{len(required.commands)} commands"
    )

    emitter = EMITTERS[config.generator](config.output_dir)
    summary = emit_declarations(registry, required, request, emitter, config.filename)
    for result in summary.files:
        print(f"  Written: {result.filename} ({result.line_count:,} lines)")
    print("Generation finished successfully!")
    return summary


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
            return
        run_generate(config)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err
    except (RegistryError, OSError, ET.ParseError) as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except RuntimeError as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
