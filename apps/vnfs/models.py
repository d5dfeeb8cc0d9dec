"""
apps.vnfs.models
~~~~~~~~~~~~~~~~
Relational (authoritative) storage for ingested configurations.

Models
------
VNFInstance
    One ingested configuration document.

VNFDefinition
    One field of an instance's catalogue, with its current value.
    Deleting an instance cascades to its definitions.
"""
from django.db import models

from apps.config_parser.services.field_extractor import DEFAULT_GROUP


class VNFInstance(models.Model):
    """
    A configured VNF built from one uploaded document.

    Fields
    ------
    id
        Auto-incrementing integer assigned on insert.  Copied as ``vnf_id``
        onto every document-store mirror record.
    name
        Display name, by default the uploaded file name without extension.
    created_at / updated_at
        Automatic timestamps.
    """

    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-id"]
        verbose_name = "VNF Instance"
        verbose_name_plural = "VNF Instances"

    def __str__(self) -> str:
        return f"#{self.id} {self.name}" if self.id else self.name


class VNFDefinition(models.Model):
    """
    Persisted projection of a
    :class:`~apps.config_parser.services.field_extractor.FieldDescriptor`.

    ``default_value`` and ``current_value`` hold the text form of the value
    (see :func:`~apps.config_parser.services.field_types.stringify_value`).
    ``modified`` is derived and recomputed on every :meth:`save`.
    ``current_value`` may only change while ``can_be_updated`` is true;
    the rule is enforced by the definition service.
    """

    vnf = models.ForeignKey(
        VNFInstance,
        on_delete=models.CASCADE,
        related_name="definitions",
    )
    parameter_name = models.CharField(
        max_length=512,
        help_text="Dotted field path, unique within one instance.",
    )
    type = models.CharField(max_length=64, default="string")
    default_value = models.TextField(blank=True, default="")
    description_text = models.TextField(blank=True, default="")
    required = models.BooleanField(default=False)
    hidden = models.BooleanField(default=False)
    hidden_condition = models.CharField(max_length=255, blank=True, default="")
    validation_rules = models.JSONField(default=dict, blank=True)
    options = models.JSONField(default=list, blank=True)
    group = models.CharField(max_length=255, default=DEFAULT_GROUP)
    order = models.IntegerField(default=0)
    metadata = models.JSONField(default=dict, blank=True)
    can_be_updated = models.BooleanField(default=False)
    current_value = models.TextField(blank=True, default="")
    modified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["vnf", "order", "id"]
        verbose_name = "VNF Definition"
        verbose_name_plural = "VNF Definitions"
        constraints = [
            models.UniqueConstraint(
                fields=["vnf", "parameter_name"],
                name="unique_parameter_per_vnf",
            ),
        ]

    def __str__(self) -> str:
        return f"vnf#{self.vnf_id}/{self.parameter_name}"

    def refresh_modified(self) -> None:
        self.modified = self.current_value != self.default_value

    def save(self, *args, **kwargs) -> None:
        """Recompute ``modified`` before every write."""
        self.refresh_modified()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "modified" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "modified"]
        super().save(*args, **kwargs)
