"""YAML serialization of manifest document trees."""

import yaml

from .models import Manifest

DOCUMENT_SEPARATOR = "---\n"


class _ManifestDumper(yaml.SafeDumper):
    """Dumper that keeps multi-line strings readable as literal blocks."""

    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_ManifestDumper.add_representer(str, _represent_str)


def to_yaml(data: dict) -> str:
    """Serialize a document tree, preserving key order."""
    return yaml.dump(
        data,
        Dumper=_ManifestDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=4096,
    )


def render_manifest(manifest: Manifest) -> str:
    return f"# {manifest.comment}\n{to_yaml(manifest.body)}"


def render_documents(header: list[str], manifests: list[Manifest]) -> str:
    """Join a comment header and documents with YAML document separators."""
    parts = ["\n".join(f"# {line}".rstrip() for line in header) + "\n"]
    parts.extend(render_manifest(manifest) for manifest in manifests)
    return DOCUMENT_SEPARATOR.join(parts)
