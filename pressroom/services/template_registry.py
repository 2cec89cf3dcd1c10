"""
Template registry.
Maps template names and ids to immutable WorkflowTemplate definitions.
"""
from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from pressroom.core.exceptions import TemplateNotFoundError, TemplateValidationError
from pressroom.schemas.template import WorkflowTemplate

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """Read-only lookup over templates registered at startup."""

    def __init__(self, templates: Iterable[WorkflowTemplate] = ()) -> None:
        self._by_name: dict[str, WorkflowTemplate] = {}
        self._by_id: dict[str, WorkflowTemplate] = {}
        for template in templates:
            self._register(template)

    @classmethod
    def with_builtin_templates(cls) -> "TemplateRegistry":
        from pressroom.templates import BUILTIN_TEMPLATES

        return cls(BUILTIN_TEMPLATES)

    def _register(self, template: WorkflowTemplate) -> None:
        if template.name in self._by_name:
            raise TemplateValidationError(f"Template name registered twice: {template.name}")
        if template.id in self._by_id:
            raise TemplateValidationError(f"Template id registered twice: {template.id}")
        self._by_name[template.name] = template
        self._by_id[template.id] = template

    def get_by_name(self, name: str) -> WorkflowTemplate:
        try:
            return self._by_name[name]
        except KeyError:
            raise TemplateNotFoundError(name) from None

    def get_by_id(self, template_id: str) -> WorkflowTemplate:
        try:
            return self._by_id[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def get(self, key: str) -> WorkflowTemplate:
        """Look a template up by id first, then by name."""
        if key in self._by_id:
            return self._by_id[key]
        return self.get_by_name(key)

    def names(self) -> list[str]:
        return list(self._by_name)

    def templates(self) -> list[WorkflowTemplate]:
        return list(self._by_name.values())

    async def sync_to_store(self, store, *, overwrite: bool = False) -> int:
        """Persist code templates missing from the store.

        A stored row with the same id or name is left alone unless
        ``overwrite`` is set. Returns the number of templates written.
        """
        stored = await store.list_templates()
        stored_ids = {record.id for record in stored}
        stored_names = {record.name for record in stored}
        written = 0
        for template in self._by_name.values():
            if not overwrite and (template.id in stored_ids or template.name in stored_names):
                continue
            await store.save_template(
                template.id,
                template.name,
                template.description,
                template.model_dump(mode="json"),
            )
            written += 1
        logger.info("Synced %s of %s templates to the store", written, len(self._by_name))
        return written

    async def load_persisted(self, store) -> list[str]:
        """Register stored templates whose names are not already defined in code."""
        loaded: list[str] = []
        for record in await store.list_templates():
            if record.name in self._by_name:
                continue
            try:
                template = WorkflowTemplate.model_validate(record.definition)
            except (ValidationError, TemplateValidationError) as exc:
                logger.warning("Skipping stored template %s: %s", record.name, exc)
                continue
            if template.id in self._by_id:
                logger.warning("Skipping stored template %s: id %s already registered", record.name, template.id)
                continue
            self._register(template)
            loaded.append(template.name)
        if loaded:
            logger.info("Loaded %s stored templates: %s", len(loaded), ", ".join(loaded))
        return loaded
