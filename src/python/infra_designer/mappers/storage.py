"""Mapper for device storage claims."""

import re

from ..config import CompilerSettings
from ..models import Device, Manifest
from ..sizing import normalize_storage_quantity

CDI_IMPORT_ANNOTATION = "cdi.kubevirt.io/storage.import.endpoint"


def resource_name(device: Device) -> str:
    """Lowercase, DNS-safe name derived from a device id."""
    name = re.sub(r"[^a-z0-9-]+", "-", device.id.lower()).strip("-")
    return name or "device"


def label_value(value: str) -> str:
    """Restrict a string to characters allowed in label values."""
    return re.sub(r"[^A-Za-z0-9._-]+", "-", value).strip("-._")[:63]


def claim_name(device: Device) -> str:
    """Stable claim name; never carries a generation token."""
    return f"{resource_name(device)}-pvc"


def build_storage_claim(device: Device, settings: CompilerSettings) -> Manifest:
    """Build the PersistentVolumeClaim that imports the base image for a device."""
    body = {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": {
            "name": claim_name(device),
            "labels": {
                "app": "containerized-data-importer",
                "device-type": device.type.value,
                "device-id": label_value(device.id),
            },
            "annotations": {
                CDI_IMPORT_ANNOTATION: settings.image_url,
            },
        },
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {
                "requests": {
                    "storage": normalize_storage_quantity(device.storage),
                },
            },
            "storageClassName": settings.storage_class,
        },
    }
    return Manifest(comment=f"PVC for {device.type.value.upper()}: {device.id}", body=body)
