import logging
from typing import Dict

from pydantic import BaseModel

from togglsync.connectors.base import BaseTimeTrackingConnector

log = logging.getLogger(__name__)


class NameIndex(BaseModel):
    """ID -> name lookups for workspaces and projects; rebuilt on every run, never cached."""
    workspace_names: Dict[int, str] = {}
    project_names: Dict[int, str] = {}

    def workspace_name(self, workspace_id: int) -> str:
        return self.workspace_names.get(workspace_id, "")

    def project_name(self, project_id) -> str:
        if project_id is None:
            return "NA"
        return self.project_names.get(project_id, "NA")


async def build_name_index(connector: BaseTimeTrackingConnector) -> NameIndex:
    """
    Enumerates all accessible workspaces and their projects.
    Projects from every workspace share one flat map; a duplicated project ID keeps the
    last workspace's name.
    """
    workspace_names: Dict[int, str] = {}
    project_names: Dict[int, str] = {}

    for workspace in await connector.list_workspaces():
        workspace_names[workspace.id] = workspace.name
        for project in await connector.list_workspace_projects(workspace.id):
            project_names[project.id] = project.name

    log.debug(f"Name index built: {len(workspace_names)} workspaces, {len(project_names)} projects")
    return NameIndex(workspace_names=workspace_names, project_names=project_names)
