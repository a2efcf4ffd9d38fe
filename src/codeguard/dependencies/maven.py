from __future__ import annotations

import re
from typing import Dict

from .base import EcosystemAdapter

_DEPENDENCY_BLOCK = re.compile(r"<dependency>(.*?)</dependency>", re.DOTALL)
_GROUP_ID = re.compile(r"<groupId>\s*(.*?)\s*</groupId>", re.DOTALL)
_ARTIFACT_ID = re.compile(r"<artifactId>\s*(.*?)\s*</artifactId>", re.DOTALL)
_VERSION = re.compile(r"<version>\s*(.*?)\s*</version>", re.DOTALL)

_GRADLE_CONFIGURATIONS = (
    "implementation",
    "compile",
    "api",
    "compileOnly",
    "runtimeOnly",
    "testImplementation",
    "testCompile",
)
_GRADLE_DEPENDENCY = re.compile(
    r"\b(?:%s)\s*\(?\s*['\"]([^:'\"]+):([^:'\"]+):([^'\"]+)['\"]" % "|".join(_GRADLE_CONFIGURATIONS)
)


def parse_pom(content: str) -> Dict[str, str]:
    """``groupId:artifactId`` for each ``<dependency>`` that pins a version."""
    deps: Dict[str, str] = {}
    for block in _DEPENDENCY_BLOCK.finditer(content):
        body = block.group(1)
        group = _GROUP_ID.search(body)
        artifact = _ARTIFACT_ID.search(body)
        version = _VERSION.search(body)
        if group and artifact and version:
            deps[f"{group.group(1)}:{artifact.group(1)}"] = version.group(1)
    return deps


def parse_gradle(content: str) -> Dict[str, str]:
    """Single-string notation only: ``implementation 'group:artifact:version'``."""
    deps: Dict[str, str] = {}
    for match in _GRADLE_DEPENDENCY.finditer(content):
        group, artifact, version = (part.strip() for part in match.groups())
        deps[f"{group}:{artifact}"] = version
    return deps


class MavenAdapter(EcosystemAdapter):
    ecosystem = "maven"
    manifest_files = ("pom.xml", "build.gradle", "build.gradle.kts")

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        if "<project" in content or "<dependency>" in content:
            return parse_pom(content)
        return parse_gradle(content)
