import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from togglsync.connectors.base import BaseTimeTrackingConnector, TogglTimeEntry
from togglsync.constants.outcomes import OutcomeCode
from togglsync.exceptions import NoTagConfiguredError, NoTagTargetsError
from togglsync.services.properties import WatermarkStore

log = logging.getLogger(__name__)


class TagBatch(BaseModel):
    workspace_id: Optional[int] = None
    time_entry_ids: List[int]
    tags: List[str]


class AutoTagResult(BaseModel):
    batches: List[TagBatch] = []
    outcome: OutcomeCode = OutcomeCode.TAGGED

    @property
    def tagged_ids(self) -> List[int]:
        return [i for batch in self.batches for i in batch.time_entry_ids]


class AutoTagger:
    """
    Adds preset tags to finished time entries that are not recorded yet (ID above the
    watermark), with one bulk request per workspace.
    """

    def __init__(self, connector: BaseTimeTrackingConnector, watermarks: WatermarkStore):
        self.connector = connector
        self.watermarks = watermarks

    async def _eligible(self) -> List[TogglTimeEntry]:
        watermark = self.watermarks.get()
        entries = await self.connector.list_time_entries()
        eligible = [e for e in entries if e.id > watermark and e.duration >= 0]
        log.debug(f"Auto-tag: {len(eligible)} of {len(entries)} entries above ID {watermark} and finished")
        return eligible

    async def _apply(self, batches: List[TagBatch]) -> AutoTagResult:
        for batch in batches:
            await self.connector.bulk_add_tags(batch.time_entry_ids, batch.tags)
            log.info(f"Tagged {len(batch.time_entry_ids)} entries in workspace {batch.workspace_id} with {batch.tags}")
        return AutoTagResult(batches=batches, outcome=OutcomeCode.TAGGED)

    async def auto_tag(self, target_workspace_id: Optional[int], tags: List[str]) -> AutoTagResult:
        """
        Tags eligible entries of target_workspace_id, or of every workspace when it is None.

        Raises:
            NoTagConfiguredError: tags is empty
            NoTagTargetsError: no entry is eligible
        """
        tags = [t for t in tags if t]
        if not tags:
            raise NoTagConfiguredError("No tag set for auto-tagging")

        grouped: Dict[int, List[int]] = {}
        for entry in await self._eligible():
            if target_workspace_id is not None and entry.wid != target_workspace_id:
                continue
            grouped.setdefault(entry.wid, []).append(entry.id)

        if not grouped:
            raise NoTagTargetsError("No time entry to tag")

        return await self._apply([
            TagBatch(workspace_id=wid, time_entry_ids=ids, tags=tags) for wid, ids in grouped.items()
        ])

    async def auto_tag_by_workspace(self, mapping: Dict[int, List[str]]) -> AutoTagResult:
        """Tags eligible entries with the tags configured for their own workspace."""
        mapping = {wid: [t for t in tags if t] for wid, tags in mapping.items()}
        mapping = {wid: tags for wid, tags in mapping.items() if tags}
        if not mapping:
            raise NoTagConfiguredError("No workspace tag mapping configured for auto-tagging")

        grouped: Dict[int, List[int]] = {}
        for entry in await self._eligible():
            if entry.wid in mapping:
                grouped.setdefault(entry.wid, []).append(entry.id)

        if not grouped:
            raise NoTagTargetsError("No time entry to tag in the mapped workspaces")

        return await self._apply([
            TagBatch(workspace_id=wid, time_entry_ids=ids, tags=mapping[wid]) for wid, ids in grouped.items()
        ])
