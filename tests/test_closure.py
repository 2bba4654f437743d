import xml.etree.ElementTree as ET
from collections.abc import Callable

import pytest

import glgen


def test_emission_order_and_baseline_types(
    sample_root: ET.Element,
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    _, summary = glgen.generate(sample_root, make_request(), recording_emitter, "gl")

    kinds = [kind for kind, _ in recording_emitter.calls]
    assert kinds[0] == "start"
    assert kinds[-1] == "finish"
    assert kinds == sorted(
        kinds, key=["start", "type", "group", "enum", "command", "finish"].index
    )
    assert recording_emitter.names("start") == [("gl", "gl", "compatibility", 4, 0)]
    assert recording_emitter.names("type") == ["GLenum", "GLuint", "GLsizei", "GLchar"]
    assert recording_emitter.names("group") == ["TextureTarget"]
    assert recording_emitter.names("enum") == [
        "GL_CURRENT_BIT",
        "GL_FRAGMENT_SHADER",
        "GL_TEXTURE_2D",
    ]
    assert recording_emitter.names("command") == [
        "glBegin",
        "glBindTexture",
        "glCreateShader",
        "glGenTextures",
    ]
    assert summary.type_count == 4
    assert summary.group_count == 1
    assert summary.enum_count == 3
    assert summary.command_count == 4


def test_each_type_is_emitted_once(
    sample_root: ET.Element,
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    glgen.generate(sample_root, make_request(extensions=("GL_KHR_debug",)), recording_emitter)

    emitted = recording_emitter.names("type")
    assert len(emitted) == len(set(emitted))
    assert emitted[-1] == "GLDEBUGPROC"


def test_required_type_dependencies_come_first(
    make_registry_root: Callable[[str], ET.Element],
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    root = make_registry_root(
        """
        <types>
          <type name="a_base">#include &lt;a.h&gt;</type>
          <type requires="a_base">typedef a_t <name>GLmiddle</name>;</type>
          <type requires="GLmiddle">typedef GLmiddle <name>GLtop</name>;</type>
        </types>
        <feature api="gl" name="GL_VERSION_1_0" number="1.0">
          <require><type name="GLtop"/></require>
        </feature>
        """
    )

    _, summary = glgen.generate(root, make_request(), recording_emitter, baseline_types=())

    assert recording_emitter.names("type") == ["a_base", "GLmiddle", "GLtop"]
    assert summary.type_count == 3


def test_emit_type_cycle_raises_runtime_error(
    make_registry_root: Callable[[str], ET.Element],
    recording_emitter,
) -> None:
    root = make_registry_root(
        """
        <types>
          <type name="A" requires="B">A</type>
          <type name="B" requires="A">B</type>
        </types>
        """
    )
    registry = glgen.load_registry(root, "gl")

    with pytest.raises(RuntimeError, match="cycle"):
        glgen.emit_type(registry, "A", recording_emitter)


def test_emit_type_missing_dependency_raises_reference_error(
    make_registry_root: Callable[[str], ET.Element],
    recording_emitter,
) -> None:
    root = make_registry_root('<types><type name="A" requires="nowhere">A</type></types>')
    registry = glgen.load_registry(root, "gl")

    with pytest.raises(glgen.RegistryReferenceError, match="nowhere"):
        glgen.emit_type(registry, "A", recording_emitter)


def test_emit_type_uses_api_variant(
    make_registry_root: Callable[[str], ET.Element],
    recording_emitter,
) -> None:
    root = make_registry_root(
        """
        <types>
          <type name="GLint">typedef int GLint;</type>
          <type name="GLint" api="gles2">typedef khronos_int32_t GLint;</type>
        </types>
        """
    )
    emitted: list[str] = []

    class CdeclEmitter(glgen.Emitter):
        def emit_type(self, info):
            emitted.append(info.cdecl)

    glgen.emit_type(glgen.load_registry(root, "gles2"), "GLint", CdeclEmitter())

    assert emitted == ["typedef khronos_int32_t GLint;"]


def test_missing_baseline_type_is_skipped(
    make_registry_root: Callable[[str], ET.Element],
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    root = make_registry_root("<types><type>typedef unsigned int <name>GLenum</name>;</type></types>")

    glgen.generate(root, make_request(), recording_emitter)

    assert recording_emitter.names("type") == ["GLenum"]


def test_baseline_type_without_api_variant_is_fatal(
    make_registry_root: Callable[[str], ET.Element],
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    root = make_registry_root(
        '<types><type api="gles2">typedef unsigned int <name>GLenum</name>;</type></types>'
    )

    with pytest.raises(glgen.RegistryReferenceError, match="GLenum"):
        glgen.generate(root, make_request(), recording_emitter)


def test_undefined_group_is_skipped(
    make_registry_root: Callable[[str], ET.Element],
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    root = make_registry_root(
        """
        <types><type>typedef unsigned int <name>GLenum</name>;</type></types>
        <commands>
          <command>
            <proto>void <name>glHint</name></proto>
            <param group="HintTarget"><ptype>GLenum</ptype> <name>target</name></param>
          </command>
        </commands>
        <feature api="gl" name="GL_VERSION_1_0" number="1.0">
          <require><command name="glHint"/></require>
        </feature>
        """
    )

    required, summary = glgen.generate(root, make_request(), recording_emitter)

    assert required.groups == {"HintTarget"}
    assert recording_emitter.names("group") == []
    assert summary.group_count == 0
    assert recording_emitter.names("command") == ["glHint"]


def test_undefined_required_enum_is_fatal(
    make_registry_root: Callable[[str], ET.Element],
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    root = make_registry_root(
        """
        <feature api="gl" name="GL_VERSION_1_0" number="1.0">
          <require><enum name="GL_GHOST"/></require>
        </feature>
        """
    )

    with pytest.raises(glgen.RegistryReferenceError, match="GL_GHOST"):
        glgen.generate(root, make_request(), recording_emitter)


def test_generate_is_repeatable(
    sample_root: ET.Element,
    make_request: Callable[..., glgen.ResolutionRequest],
    recording_emitter,
) -> None:
    second = type(recording_emitter)()
    request = make_request(profile="core", extensions=("GL_KHR_debug",))

    glgen.generate(sample_root, request, recording_emitter)
    glgen.generate(sample_root, request, second)

    assert recording_emitter.calls == second.calls
