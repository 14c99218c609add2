"""SkillBridge CLI — command-line interface for staffing operations.

Usage:
    skillbridge status
    skillbridge add-profile --id u1 --name "Ada Lovelace" --email ada@example.com --role employee
    skillbridge add-skill --id fe --name Frontend
    skillbridge add-skill --id react --name React --skill fe
    skillbridge rate --user u1 --subskill react --rating high
    skillbridge match --require react=medium --require sql=high
    skillbridge create-project --as lead-1 --name Portal --description "Customer portal" \\
        --start 2026-01-05 --require react=medium --member u1=50
    skillbridge approve-project --id <project-id> --as manager-1
    skillbridge reject-project --id <project-id> --as manager-1 --reason "No budget"
    skillbridge history --project <project-id>
    skillbridge capacity --user u1
    skillbridge resources

Settings come from SKILLBRIDGE_* environment variables and a .env file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from skillbridge.config import Settings
from skillbridge.models.profile import ProfileStatus, Role
from skillbridge.models.project import AllocationPercentage, MemberAllocation, ProjectForm
from skillbridge.models.skill import RatingLevel, RatingStatus
from skillbridge.service import ServiceResult, StaffingService


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def _make_service(args: argparse.Namespace) -> StaffingService:
    """Create a StaffingService from the loaded settings."""
    settings: Settings = args.settings
    if settings.backend == "memory":
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    return StaffingService.from_settings(settings)


def _fail(result: ServiceResult) -> int:
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def _warn(result: ServiceResult) -> None:
    for o in result.data.get("over_allocated", []):
        print(
            f"Warning: {o['user_id']} would be allocated {o['projected_total']}%",
            file=sys.stderr,
        )
    if "warning" in result.data:
        print(f"Warning: {result.data['warning']}", file=sys.stderr)


def _requirement(text: str) -> tuple[str, RatingLevel]:
    subskill_id, sep, rating = text.partition("=")
    if not sep or not subskill_id:
        raise argparse.ArgumentTypeError(f"expected SUBSKILL=RATING, got '{text}'")
    try:
        return subskill_id, RatingLevel(rating.lower())
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"rating must be low, medium or high, got '{rating}'"
        ) from None


def _member(text: str) -> MemberAllocation:
    user_id, sep, pct = text.partition("=")
    if not sep or not user_id:
        raise argparse.ArgumentTypeError(f"expected USER=PERCENT, got '{text}'")
    try:
        return MemberAllocation(
            user_id=user_id,
            allocation_percentage=AllocationPercentage(int(pct.rstrip("%"))),
        )
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"allocation must be 25, 50, 75 or 100, got '{pct}'"
        ) from None


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_add_profile(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.register_profile(
        user_id=args.id,
        full_name=args.name,
        email=args.email,
        role=Role(args.role),
        status=ProfileStatus.INACTIVE if args.inactive else ProfileStatus.ACTIVE,
    )
    if not result.success:
        return _fail(result)
    print(f"Saved profile: {result.data['user_id']}")
    return 0


def cmd_add_skill(args: argparse.Namespace) -> int:
    service = _make_service(args)
    if args.skill:
        result = service.add_subskill(args.id, args.skill, args.name)
        label = "subskill"
    else:
        result = service.add_skill(args.id, args.name)
        label = "skill"
    if not result.success:
        return _fail(result)
    print(f"Saved {label}: {args.id}")
    return 0


def cmd_rate(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.record_rating(
        args.user, args.subskill, RatingLevel(args.rating), RatingStatus(args.status),
    )
    if not result.success:
        return _fail(result)
    print(f"Rated {args.user} on {args.subskill}: {args.rating} ({args.status})")
    return 0


def cmd_match(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        required = [service.required_skill(sid, level) for sid, level in args.require]
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    result = service.find_matching_employees(required)
    if not result.success:
        return _fail(result)
    matches = result.data["matches"]
    if args.json:
        print(json.dumps([m.to_dict() for m in matches], indent=2))
        return 0
    if not matches:
        print("No candidates found")
        return 0
    for m in matches:
        print(
            f"{m.match_percentage:3d}%  {m.matched_skills}/{m.total_required_skills}  "
            f"capacity {m.available_capacity:4d}%  {m.full_name} <{m.email}>"
        )
    return 0


def cmd_create_project(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        required = [service.required_skill(sid, level) for sid, level in args.require]
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    form = ProjectForm(
        name=args.name,
        description=args.description,
        start_date=args.start,
        end_date=args.end,
        required_skills=required,
        members=list(args.member),
    )
    result = service.create_project(form, acting_user_id=args.acting_user, tech_lead_id=args.tech_lead)
    _warn(result)
    if not result.success:
        return _fail(result)
    print(f"Created project: {result.data['project_id']} ({result.data['status']})")
    return 0


def cmd_approve_project(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.approve_project(args.id, acting_user_id=args.acting_user)
    if not result.success:
        return _fail(result)
    print(f"Approved project: {args.id}")
    return 0


def cmd_reject_project(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.reject_project(args.id, acting_user_id=args.acting_user, reason=args.reason)
    if not result.success:
        return _fail(result)
    print(f"Rejected project: {args.id}")
    return 0


def cmd_delete_project(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.delete_project(args.id, acting_user_id=args.acting_user)
    if not result.success:
        return _fail(result)
    print(f"Deleted project: {args.id}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    service = _make_service(args)
    if args.project:
        result = service.get_allocation_history(args.project)
        if not result.success:
            return _fail(result)
        for view in result.data["history"]:
            e = view.entry
            previous = "-" if e.previous_allocation is None else f"{e.previous_allocation}%"
            print(
                f"{_when(e.created_at)}  {view.full_name}: {previous} -> "
                f"{e.new_allocation}%  {e.change_reason} (by {view.changed_by_name})"
            )
        return 0
    result = service.user_project_history(args.user)
    if not result.success:
        return _fail(result)
    for item in result.data["history"]:
        print(
            f"{_when(item.assigned_at)}  {item.project_name}: "
            f"{item.allocation_percentage}%  {item.change_reason} (by {item.changed_by_name})"
        )
    return 0


def cmd_capacity(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.get_user_capacity(args.user)
    if not result.success:
        return _fail(result)
    print(f"{args.user}: allocated {result.data['total']}%, available {result.data['available']}%")
    current = service.user_current_projects(args.user)
    if not current.success:
        return _fail(current)
    for p in current.data["projects"]:
        print(f"  {p.project_name} [{p.project_status}] {p.allocation_percentage}%")
    return 0


def cmd_resources(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.resource_allocations()
    if not result.success:
        return _fail(result)
    for r in result.data["resources"]:
        print(
            f"{r.total_allocation:4d}%  available {r.available_capacity:4d}%  "
            f"{r.active_projects_count} active  {r.full_name} ({r.role})"
        )
    return 0


def _when(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value is not None else "????-??-?? --:--"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillbridge",
        description="SkillBridge — skills matching and project staffing CLI",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory for state.json and events.jsonl (default: SKILLBRIDGE_DATA_DIR or data/)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show backend summary")

    # add-profile
    p_prof = sub.add_parser("add-profile", help="Create or replace a user profile")
    p_prof.add_argument("--id", required=True, help="User ID")
    p_prof.add_argument("--name", required=True, help="Full name")
    p_prof.add_argument("--email", required=True, help="Email address")
    p_prof.add_argument("--role", required=True, choices=[r.value for r in Role])
    p_prof.add_argument("--inactive", action="store_true", help="Mark the profile inactive")

    # add-skill
    p_skill = sub.add_parser("add-skill", help="Add a skill, or a subskill with --skill")
    p_skill.add_argument("--id", required=True, help="Skill or subskill ID")
    p_skill.add_argument("--name", required=True, help="Display name")
    p_skill.add_argument("--skill", help="Parent skill ID (adds a subskill)")

    # rate
    p_rate = sub.add_parser("rate", help="Record a user's rating on a subskill")
    p_rate.add_argument("--user", required=True, help="User ID")
    p_rate.add_argument("--subskill", required=True, help="Subskill ID")
    p_rate.add_argument("--rating", required=True, choices=[r.value for r in RatingLevel])
    p_rate.add_argument(
        "--status",
        default=RatingStatus.APPROVED.value,
        choices=[s.value for s in RatingStatus],
        help="Rating status (default: approved)",
    )

    # match
    p_match = sub.add_parser("match", help="Rank candidates against required skills")
    p_match.add_argument(
        "--require", type=_requirement, action="append", default=[],
        metavar="SUBSKILL=RATING", help="Required subskill and minimum rating (repeatable)",
    )
    p_match.add_argument("--json", action="store_true", help="Print matches as JSON")

    # create-project
    p_create = sub.add_parser("create-project", help="Create a project awaiting approval")
    p_create.add_argument("--as", dest="acting_user", required=True, help="Acting user ID")
    p_create.add_argument("--name", required=True, help="Project name")
    p_create.add_argument("--description", default="", help="Project description")
    p_create.add_argument("--start", type=date.fromisoformat, help="Start date (YYYY-MM-DD)")
    p_create.add_argument("--end", type=date.fromisoformat, help="End date (YYYY-MM-DD)")
    p_create.add_argument("--tech-lead", help="Tech lead user ID")
    p_create.add_argument(
        "--require", type=_requirement, action="append", default=[],
        metavar="SUBSKILL=RATING", help="Required subskill and minimum rating (repeatable)",
    )
    p_create.add_argument(
        "--member", type=_member, action="append", default=[],
        metavar="USER=PERCENT", help="Team member and allocation (repeatable)",
    )

    # approve-project / reject-project / delete-project
    p_appr = sub.add_parser("approve-project", help="Approve a project awaiting approval")
    p_appr.add_argument("--id", required=True, help="Project ID")
    p_appr.add_argument("--as", dest="acting_user", required=True, help="Acting user ID")

    p_rej = sub.add_parser("reject-project", help="Reject a project awaiting approval")
    p_rej.add_argument("--id", required=True, help="Project ID")
    p_rej.add_argument("--as", dest="acting_user", required=True, help="Acting user ID")
    p_rej.add_argument("--reason", required=True, help="Rejection reason")

    p_del = sub.add_parser("delete-project", help="Delete a project and its history")
    p_del.add_argument("--id", required=True, help="Project ID")
    p_del.add_argument("--as", dest="acting_user", required=True, help="Acting user ID")

    # history
    p_hist = sub.add_parser("history", help="Allocation history of a project or a user")
    target = p_hist.add_mutually_exclusive_group(required=True)
    target.add_argument("--project", help="Project ID")
    target.add_argument("--user", help="User ID")

    # capacity
    p_cap = sub.add_parser("capacity", help="Show a user's allocation and current projects")
    p_cap.add_argument("--user", required=True, help="User ID")

    # resources
    sub.add_parser("resources", help="Show every candidate's allocation")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = Settings.from_env()
        if args.data_dir is not None:
            settings = replace(settings, data_dir=args.data_dir)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    args.settings = settings

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format=LOG_FORMAT,
    )

    commands = {
        "status": cmd_status,
        "add-profile": cmd_add_profile,
        "add-skill": cmd_add_skill,
        "rate": cmd_rate,
        "match": cmd_match,
        "create-project": cmd_create_project,
        "approve-project": cmd_approve_project,
        "reject-project": cmd_reject_project,
        "delete-project": cmd_delete_project,
        "history": cmd_history,
        "capacity": cmd_capacity,
        "resources": cmd_resources,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (ValueError, OSError) as e:
        # Unreadable state or activity log
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
