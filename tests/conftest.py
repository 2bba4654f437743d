import argparse
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

import glgen

SAMPLE_REGISTRY = """
<types>
  <type name="GLvoid">typedef void <name>GLvoid</name>;</type>
  <type>typedef unsigned int <name>GLenum</name>;</type>
  <type>typedef unsigned int <name>GLuint</name>;</type>
  <type>typedef int <name>GLsizei</name>;</type>
  <type>typedef char <name>GLchar</name>;</type>
  <type>typedef float <name>GLfloat</name>;</type>
  <type name="khrplatform">#include &lt;KHR/khrplatform.h&gt;</type>
  <type requires="khrplatform">typedef khronos_int8_t <name>GLbyte</name>;</type>
  <type>typedef void (<apientry/> *<name>GLDEBUGPROC</name>)(GLenum source,const GLchar *message);</type>
</types>
<groups>
  <group name="TextureTarget">
    <enum name="GL_TEXTURE_2D"/>
  </group>
</groups>
<enums namespace="GL">
  <enum value="0x0DE1" name="GL_TEXTURE_2D"/>
  <enum value="0x1702" name="GL_TEXTURE"/>
  <enum value="0x8B30" name="GL_FRAGMENT_SHADER"/>
  <enum value="0xFFFFFFFF" type="u" name="GL_INVALID_INDEX"/>
  <enum value="0x0B00" name="GL_CURRENT_BIT"/>
  <enum value="0x9242" name="GL_CONTEXT_FLAG_DEBUG_BIT_KHR"/>
</enums>
<commands namespace="GL">
  <command>
    <proto>void <name>glBindTexture</name></proto>
    <param group="TextureTarget"><ptype>GLenum</ptype> <name>target</name></param>
    <param><ptype>GLuint</ptype> <name>texture</name></param>
  </command>
  <command>
    <proto>void <name>glGenTextures</name></proto>
    <param><ptype>GLsizei</ptype> <name>n</name></param>
    <param len="n"><ptype>GLuint</ptype> *<name>textures</name></param>
  </command>
  <command>
    <proto><ptype>GLuint</ptype> <name>glCreateShader</name></proto>
    <param><ptype>GLenum</ptype> <name>type</name></param>
  </command>
  <command>
    <proto>void <name>glBegin</name></proto>
    <param><ptype>GLenum</ptype> <name>mode</name></param>
  </command>
  <command>
    <proto>void <name>glDebugMessageCallbackKHR</name></proto>
    <param><ptype>GLDEBUGPROC</ptype> <name>callback</name></param>
  </command>
</commands>
<feature api="gl" name="GL_VERSION_2_0" number="2.0">
  <require>
    <enum name="GL_FRAGMENT_SHADER"/>
    <command name="glCreateShader"/>
  </require>
</feature>
<feature api="gl" name="GL_VERSION_1_0" number="1.0">
  <require>
    <enum name="GL_TEXTURE_2D"/>
    <enum name="GL_CURRENT_BIT"/>
    <command name="glBindTexture"/>
    <command name="glBegin"/>
  </require>
</feature>
<feature api="gl" name="GL_VERSION_1_1" number="1.1">
  <require>
    <command name="glGenTextures"/>
  </require>
</feature>
<feature api="gl" name="GL_VERSION_3_2" number="3.2">
  <remove profile="core">
    <enum name="GL_CURRENT_BIT"/>
    <command name="glBegin"/>
  </remove>
</feature>
<feature api="gles2" name="GL_ES_VERSION_2_0" number="2.0">
  <require>
    <enum name="GL_TEXTURE_2D"/>
    <command name="glBindTexture"/>
  </require>
</feature>
<extensions>
  <extension name="GL_KHR_debug" supported="gl|glcore|gles2">
    <require>
      <enum name="GL_CONTEXT_FLAG_DEBUG_BIT_KHR"/>
      <command name="glDebugMessageCallbackKHR"/>
    </require>
  </extension>
  <extension name="GL_OES_texture_3D" supported="gles2">
    <require>
      <enum name="GL_TEXTURE"/>
    </require>
  </extension>
</extensions>
"""


class RecordingEmitter(glgen.Emitter):
    """Keeps every emitter call as a (method, payload) pair."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def start(self, output_name, api_name, profile, version_major, version_minor):
        self.calls.append(
            ("start", (output_name, api_name, profile, version_major, version_minor))
        )

    def emit_type(self, info):
        self.calls.append(("type", info.name))

    def emit_enum_group(self, info):
        self.calls.append(("group", info.name))

    def emit_enumerant(self, info):
        self.calls.append(("enum", info.name))

    def emit_command(self, info):
        self.calls.append(("command", info.name))

    def finish(self):
        self.calls.append(("finish", None))
        return ()

    def names(self, method: str) -> list[object]:
        return [payload for kind, payload in self.calls if kind == method]


@pytest.fixture
def make_registry_root() -> Callable[[str], ET.Element]:
    def _make_registry_root(inner_xml: str) -> ET.Element:
        return ET.fromstring(f"<registry>{inner_xml}</registry>")

    return _make_registry_root


@pytest.fixture
def sample_root(make_registry_root: Callable[[str], ET.Element]) -> ET.Element:
    return make_registry_root(SAMPLE_REGISTRY)


@pytest.fixture
def registry_file(tmp_path: Path) -> Path:
    path = tmp_path / "gl.xml"
    path.write_text(f"<registry>{SAMPLE_REGISTRY}</registry>\n", encoding="utf-8")
    return path


@pytest.fixture
def make_request() -> Callable[..., glgen.ResolutionRequest]:
    def _make_request(
        api: str = "gl",
        version: str = "4.0",
        profile: str = "compatibility",
        extensions: tuple[str, ...] = (),
    ) -> glgen.ResolutionRequest:
        return glgen.ResolutionRequest(
            api=api,
            version=glgen.parse_api_version(version),
            profile=profile,
            extensions=frozenset(extensions),
        )

    return _make_request


@pytest.fixture
def recording_emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def make_args(registry_file: Path, tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "registry": registry_file,
            "api": glgen.DEFAULT_API,
            "ver": None,
            "profile": glgen.DEFAULT_PROFILE,
            "exts": None,
            "filename": glgen.DEFAULT_FILENAME,
            "generator": glgen.DEFAULT_GENERATOR,
            "output_dir": tmp_path / "out",
            "list_versions": False,
            "list_extensions": False,
            "filter": None,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args
