"""Project ownership lookup."""

from deploy_orchestrator.core.exceptions import NotFoundError, PermissionDeniedError


class ProjectDirectory:
    """Resolves project owners.

    Project storage lives outside this service; this in-memory directory
    stands in for it and can be seeded from settings.
    """

    def __init__(self, owners: dict[str, str] | None = None):
        self._owners: dict[str, str] = dict(owners or {})

    def register(self, project_id: str, owner_id: str) -> None:
        """Record the owner of a project."""
        self._owners[project_id] = owner_id

    async def resolve_project_owner(self, project_id: str) -> str:
        """Return the owner of a project or raise ``NotFoundError``."""
        owner_id = self._owners.get(project_id)
        if owner_id is None:
            raise NotFoundError("Project", project_id)
        return owner_id

    async def authorize(self, project_id: str, user_id: str) -> None:
        """Raise unless ``user_id`` owns the project."""
        owner_id = await self.resolve_project_owner(project_id)
        if owner_id != user_id:
            raise PermissionDeniedError(project_id)
