"""Read access to the project artifact tables knowledge is extracted from."""

import json
import logging
from typing import Any

from aloa_knowledge.db.backend import Database, Row

logger = logging.getLogger(__name__)


def row_to_dict(row: Row, json_columns: tuple[str, ...] = ()) -> dict[str, Any]:
    """Convert a row to a dict, decoding the named JSON text columns."""
    data = {key: row[key] for key in row.keys()}
    for column in json_columns:
        raw = data.get(column)
        if isinstance(raw, str):
            try:
                data[column] = json.loads(raw)
            except ValueError:
                logger.warning("Column %s holds invalid JSON, treating as empty", column)
                data[column] = {}
    return data


class SourceStore:
    """Fetches raw source rows, joined with the rows adapters need."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    async def get_project(self, project_id: str) -> dict[str, Any] | None:
        """Get a project row."""
        cursor = await self.db.execute("SELECT * FROM projects WHERE id = ?", (project_id,))
        row = await cursor.fetchone()
        return row_to_dict(row, ("metadata",)) if row else None

    async def get_form_response(self, response_id: str) -> dict[str, Any] | None:
        """Get a form response with its form and ordered form fields under ``form``."""
        cursor = await self.db.execute(
            "SELECT * FROM applet_responses WHERE id = ?", (response_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        response = row_to_dict(row, ("response_data",))

        form: dict[str, Any] = {}
        if response.get("form_id"):
            cursor = await self.db.execute(
                "SELECT id, title, description FROM forms WHERE id = ?", (response["form_id"],)
            )
            form_row = await cursor.fetchone()
            if form_row is not None:
                form = row_to_dict(form_row)
            cursor = await self.db.execute(
                "SELECT field_label, field_name, field_type FROM form_fields"
                " WHERE form_id = ? ORDER BY field_order, field_name",
                (response["form_id"],),
            )
            form["fields"] = [row_to_dict(r) for r in await cursor.fetchall()]
        response["form"] = form
        return response

    async def get_applet_interaction(self, interaction_id: str) -> dict[str, Any] | None:
        """Get an applet interaction with its applet under ``applet``."""
        cursor = await self.db.execute(
            "SELECT * FROM applet_interactions WHERE id = ?", (interaction_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        interaction = row_to_dict(row, ("data",))

        applet: dict[str, Any] = {}
        if interaction.get("applet_id"):
            cursor = await self.db.execute(
                "SELECT id, name, type, config FROM applets WHERE id = ?",
                (interaction["applet_id"],),
            )
            applet_row = await cursor.fetchone()
            if applet_row is not None:
                applet = row_to_dict(applet_row, ("config",))
        interaction["applet"] = applet
        return interaction

    async def get_file(self, file_id: str) -> dict[str, Any] | None:
        """Get an uploaded file's metadata row."""
        cursor = await self.db.execute("SELECT * FROM project_files WHERE id = ?", (file_id,))
        row = await cursor.fetchone()
        return row_to_dict(row) if row else None

    async def get_communication(self, communication_id: str) -> dict[str, Any] | None:
        """Get a communication thread row."""
        cursor = await self.db.execute(
            "SELECT * FROM communications WHERE id = ?", (communication_id,)
        )
        row = await cursor.fetchone()
        return row_to_dict(row, ("attachments",)) if row else None

    async def get_communication_messages(self, communication_id: str) -> list[dict[str, Any]]:
        """Get a thread's messages, oldest first."""
        cursor = await self.db.execute(
            "SELECT * FROM communication_messages WHERE communication_id = ?"
            " ORDER BY created_at",
            (communication_id,),
        )
        messages = [row_to_dict(r, ("attachments",)) for r in await cursor.fetchall()]
        for message in messages:
            message["is_admin"] = bool(message.get("is_admin"))
        return messages

    async def recent_form_responses(self, project_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Latest form responses for a project, with the form title."""
        cursor = await self.db.execute(
            "SELECT r.id, r.response_data, r.created_at, f.title AS form_title"
            " FROM applet_responses r LEFT JOIN forms f ON f.id = r.form_id"
            " WHERE r.project_id = ? ORDER BY r.created_at DESC LIMIT ?",
            (project_id, limit),
        )
        return [row_to_dict(r, ("response_data",)) for r in await cursor.fetchall()]

    async def recent_interactions(self, project_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Latest applet interactions for a project, with applet name and type."""
        cursor = await self.db.execute(
            "SELECT i.id, i.interaction_type, i.created_at,"
            " a.name AS applet_name, a.type AS applet_type"
            " FROM applet_interactions i LEFT JOIN applets a ON a.id = i.applet_id"
            " WHERE i.project_id = ? ORDER BY i.created_at DESC LIMIT ?",
            (project_id, limit),
        )
        return [row_to_dict(r) for r in await cursor.fetchall()]
