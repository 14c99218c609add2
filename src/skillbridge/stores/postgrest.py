"""PostgREST backend — store contracts over the hosted REST API.

Tables live under ``{api_url}/rest/v1/<table>`` and are filtered with
PostgREST operators (``col=eq.value``, ``col=in.(a,b)``). The total
allocation of a user comes from the ``get_user_total_allocation`` RPC,
which sums the user's assignments on active and awaiting projects.

Requests are not retried. Any transport failure or non-2xx response is
logged and raised as StoreError.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter

from skillbridge.access import is_match_candidate
from skillbridge.errors import StoreError
from skillbridge.models.profile import Profile, Role
from skillbridge.models.project import (
    AllocationHistoryEntry,
    AllocationPercentage,
    Project,
    ProjectAssignment,
)
from skillbridge.models.skill import (
    EmployeeRating,
    RatingLevel,
    RatingStatus,
    RequiredSkill,
    Skill,
    Subskill,
)
from skillbridge.projects.diff import ProjectChangeSet
from skillbridge.stores.base import StaffingBackend


logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "user_id,full_name,email,role,status"
ASSIGNMENT_COLUMNS = "project_id,user_id,allocation_percentage,assigned_by"
REQUIRED_SKILL_COLUMNS = (
    "skill_id,subskill_id,required_rating,"
    "skills!project_required_skills_skill_id_fkey(name),"
    "subskills!project_required_skills_subskill_id_fkey(name)"
)
TOTAL_ALLOCATION_RPC = "rpc/get_user_total_allocation"


def eq(value: Any) -> str:
    return f"eq.{value}"


def in_(values: Iterable[Any]) -> str:
    return "in.(" + ",".join(str(v) for v in values) + ")"


class PostgrestBackend(StaffingBackend):
    """Store contracts backed by a PostgREST endpoint.

    Usage:
        backend = PostgrestBackend("https://xyz.example.co", api_key)
        backend.list_active_candidates()
    """

    name = "postgrest"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 10.0,
        pool_size: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_url:
            raise ValueError("PostgREST backend requires an API URL")
        if not api_key:
            raise ValueError("PostgREST backend requires an API key")
        self._base = api_url.rstrip("/") + "/rest/v1/"
        self._timeout = timeout
        self.session = session or self._create_session(pool_size)
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    @staticmethod
    def _create_session(pool_size: int) -> requests.Session:
        """Session with a connection pool sized for concurrent matching."""
        session = requests.Session()
        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=pool_size,
            pool_maxsize=pool_size,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        payload: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = self.session.request(
                method,
                self._base + path,
                params=params,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise StoreError(f"{method} {path} failed: {e}") from e
        if not response.content:
            return None
        return response.json()

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        return self._request("GET", table, params=params) or []

    def _insert(self, table: str, rows: list[dict[str, Any]]) -> None:
        if rows:
            self._request("POST", table, payload=rows, prefer="return=minimal")

    def _upsert(self, table: str, row: dict[str, Any], on_conflict: str) -> None:
        self._request(
            "POST", table,
            params={"on_conflict": on_conflict},
            payload=[row],
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def _update(self, table: str, filters: dict[str, str], values: dict[str, Any]) -> None:
        self._request("PATCH", table, params=filters, payload=values, prefer="return=minimal")

    def _delete(self, table: str, filters: dict[str, str]) -> None:
        self._request("DELETE", table, params=filters)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def list_active_candidates(self) -> list[Profile]:
        rows = self._select("profiles", {
            "select": PROFILE_COLUMNS,
            "status": eq("active"),
            "role": in_(r.value for r in Role if is_match_candidate(r)),
        })
        return [Profile.from_dict(r) for r in rows]

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = self._select("profiles", {"select": PROFILE_COLUMNS, "user_id": in_(ids)})
        return {r["user_id"]: Profile.from_dict(r) for r in rows}

    def save_profile(self, profile: Profile) -> None:
        self._upsert("profiles", profile.to_dict(), on_conflict="user_id")

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_skills(self) -> list[Skill]:
        rows = self._select("skills", {"select": "id,name", "order": "name.asc"})
        return [Skill(id=str(r["id"]), name=r["name"]) for r in rows]

    def list_subskills(self, skill_id: Optional[str] = None) -> list[Subskill]:
        params = {"select": "id,skill_id,name", "order": "name.asc"}
        if skill_id is not None:
            params["skill_id"] = eq(skill_id)
        rows = self._select("subskills", params)
        return [
            Subskill(id=str(r["id"]), skill_id=str(r["skill_id"]), name=r["name"])
            for r in rows
        ]

    def save_skill(self, skill: Skill) -> None:
        self._upsert("skills", {"id": skill.id, "name": skill.name}, on_conflict="id")

    def save_subskill(self, subskill: Subskill) -> None:
        self._upsert(
            "subskills",
            {"id": subskill.id, "skill_id": subskill.skill_id, "name": subskill.name},
            on_conflict="id",
        )

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    def get_approved_ratings(self, user_id: str) -> list[EmployeeRating]:
        rows = self._select("employee_ratings", {
            "select": "user_id,skill_id,subskill_id,rating,status",
            "user_id": eq(user_id),
            "status": eq(RatingStatus.APPROVED.value),
        })
        return [
            EmployeeRating(
                user_id=r["user_id"],
                skill_id=str(r["skill_id"]),
                subskill_id=str(r["subskill_id"]),
                rating=RatingLevel(r["rating"]),
                status=RatingStatus(r["status"]),
            )
            for r in rows
        ]

    def save_rating(self, rating: EmployeeRating) -> None:
        self._upsert(
            "employee_ratings",
            {
                "user_id": rating.user_id,
                "skill_id": rating.skill_id,
                "subskill_id": rating.subskill_id,
                "rating": rating.rating.value,
                "status": rating.status.value,
            },
            on_conflict="user_id,subskill_id",
        )

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def get_total_allocation(self, user_id: str) -> int:
        total = self._request("POST", TOTAL_ALLOCATION_RPC, payload={"user_id_param": user_id})
        return int(total or 0)

    def get_user_assignments(self, user_id: str) -> list[ProjectAssignment]:
        rows = self._select("project_assignments", {
            "select": ASSIGNMENT_COLUMNS,
            "user_id": eq(user_id),
        })
        return [_assignment_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def insert_project(
        self,
        project: Project,
        required_skills: list[RequiredSkill],
        assignments: list[ProjectAssignment],
    ) -> None:
        self._insert("projects", [project.to_row()])
        self._insert("project_required_skills", [
            _required_skill_row(project.id, s) for s in required_skills
        ])
        self._insert("project_assignments", [_assignment_row(a) for a in assignments])

    def get_project(self, project_id: str) -> Optional[Project]:
        rows = self._select("projects", {"select": "*", "id": eq(project_id)})
        return Project.from_row(rows[0]) if rows else None

    def list_projects(self) -> list[Project]:
        rows = self._select("projects", {"select": "*", "order": "created_at.desc"})
        return [Project.from_row(r) for r in rows]

    def update_project(self, project: Project) -> None:
        values = project.to_row()
        values.pop("id")
        values.pop("created_at")
        self._update("projects", {"id": eq(project.id)}, values)

    def delete_project(self, project_id: str) -> None:
        # Children first: foreign keys reference projects.id
        scope = {"project_id": eq(project_id)}
        self._delete("project_assignments", scope)
        self._delete("project_required_skills", scope)
        self._delete("project_allocation_history", scope)
        self._delete("projects", {"id": eq(project_id)})

    def get_required_skills(self, project_id: str) -> list[RequiredSkill]:
        rows = self._select("project_required_skills", {
            "select": REQUIRED_SKILL_COLUMNS,
            "project_id": eq(project_id),
        })
        return [
            RequiredSkill(
                skill_id=str(r["skill_id"]),
                subskill_id=str(r["subskill_id"]),
                required_rating=RatingLevel(r["required_rating"]),
                skill_name=(r.get("skills") or {}).get("name", ""),
                subskill_name=(r.get("subskills") or {}).get("name", ""),
            )
            for r in rows
        ]

    def get_assignments(self, project_id: str) -> list[ProjectAssignment]:
        rows = self._select("project_assignments", {
            "select": ASSIGNMENT_COLUMNS,
            "project_id": eq(project_id),
        })
        return [_assignment_from_row(r) for r in rows]

    def apply_changes(
        self,
        project_id: str,
        changes: ProjectChangeSet,
        assigned_by: str,
    ) -> None:
        scope = eq(project_id)
        for s in changes.skills_removed:
            self._delete("project_required_skills", {
                "project_id": scope,
                "subskill_id": eq(s.subskill_id),
                "required_rating": eq(s.required_rating.value),
            })
        self._insert("project_required_skills", [
            _required_skill_row(project_id, s) for s in changes.skills_added
        ])

        if changes.members_removed:
            self._delete("project_assignments", {
                "project_id": scope,
                "user_id": in_(a.user_id for a in changes.members_removed),
            })
        for c in changes.members_changed:
            self._update(
                "project_assignments",
                {"project_id": scope, "user_id": eq(c.user_id)},
                {"allocation_percentage": int(c.new), "assigned_by": assigned_by},
            )
        self._insert("project_assignments", [
            _assignment_row(ProjectAssignment(
                project_id=project_id,
                user_id=m.user_id,
                allocation_percentage=m.allocation_percentage,
                assigned_by=assigned_by,
            ))
            for m in changes.members_added
        ])

    def insert_history(self, entries: list[AllocationHistoryEntry]) -> None:
        self._insert("project_allocation_history", [e.to_row() for e in entries])

    def get_history(self, project_id: str) -> list[AllocationHistoryEntry]:
        rows = self._select("project_allocation_history", {
            "select": "*",
            "project_id": eq(project_id),
            "order": "created_at.desc",
        })
        return [AllocationHistoryEntry.from_row(r) for r in rows]

    def get_user_history(self, user_id: str) -> list[AllocationHistoryEntry]:
        rows = self._select("project_allocation_history", {
            "select": "*",
            "user_id": eq(user_id),
            "order": "created_at.desc",
        })
        return [AllocationHistoryEntry.from_row(r) for r in rows]


def _assignment_row(a: ProjectAssignment) -> dict[str, Any]:
    return {
        "project_id": a.project_id,
        "user_id": a.user_id,
        "allocation_percentage": int(a.allocation_percentage),
        "assigned_by": a.assigned_by,
    }


def _assignment_from_row(r: dict[str, Any]) -> ProjectAssignment:
    return ProjectAssignment(
        project_id=r["project_id"],
        user_id=r["user_id"],
        allocation_percentage=AllocationPercentage(r["allocation_percentage"]),
        assigned_by=r.get("assigned_by"),
    )


def _required_skill_row(project_id: str, s: RequiredSkill) -> dict[str, Any]:
    return {
        "project_id": project_id,
        "skill_id": s.skill_id,
        "subskill_id": s.subskill_id,
        "required_rating": s.required_rating.value,
    }
