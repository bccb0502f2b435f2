"""Workspace CLI.

Every command except init-db acts as the user given with ``--as`` and goes
through the same access checks as the portal.

Usage:
    python cli.py workspace init-db
    python cli.py workspace timeline --project <id> --as <member-id>
    python cli.py workspace milestones --project <id> --as <member-id>
    python cli.py workspace applicants --project <id> --as <client-id>
    python cli.py workspace accept --project <id> --applicant <id> --as <client-id>
    python cli.py workspace close --project <id> --as <client-id>
    python cli.py workspace admin-projects --as <admin-id> --status active --q landing
    python cli.py workspace admin-users --as <admin-id> --role talent --suspension suspended
"""
import argparse
import logging
import sys

from .access import authorize_member
from .admin_service import admin_list_projects, admin_list_users
from .applicants import accept_applicant, list_applicants
from .database import get_engine, get_session, init_db
from .errors import WorkspaceError
from .service import WorkspaceView, close_project_as_complete, get_workspace
from .store import SqlAlchemyStore

logger = logging.getLogger(__name__)

PROJECT_COMMANDS = ("timeline", "milestones", "applicants", "accept", "close")


def _load_workspace(store: SqlAlchemyStore, user_id: str, project_id: str) -> WorkspaceView:
    _, role = authorize_member(store, project_id, user_id)
    return get_workspace(store, user_id, project_id, role)


def _print_timeline(view: WorkspaceView) -> None:
    if not view.messages:
        print(f"No messages for project {view.project.id}")
        return
    for m in view.messages:
        stamp = m.created_at.strftime("%Y-%m-%d %H:%M")
        print(f"  {m.seq:>4}  {stamp}  [{m.role:<7}] {m.body}")


def _print_milestones(view: WorkspaceView) -> None:
    if not view.milestones:
        print(f"No milestones for project {view.project.id}")
        return
    for m in view.milestones:
        amount = m.amount or "-"
        print(f"  {m.id}  {m.status:<12} {amount:>10}  {m.title}")
    print(f"\n  {view.approved_count}/{len(view.milestones)} approved")


def _print_page(label: str, pagination: dict) -> None:
    print(
        f"\n  Page {pagination['page']}/{pagination['total_pages']} "
        f"({pagination['total']} {label})"
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Project Workspace")
    parser.add_argument(
        "command",
        choices=[
            "init-db", "timeline", "milestones", "applicants", "accept", "close",
            "admin-projects", "admin-users",
        ],
    )
    parser.add_argument("--project", help="Project ID")
    parser.add_argument("--applicant", help="Applicant ID (accept)")
    parser.add_argument("--as", dest="as_user", help="Acting user ID")
    parser.add_argument("--status", help="Project status filter (admin-projects)")
    parser.add_argument("--role", help="User role filter (admin-users)")
    parser.add_argument(
        "--suspension", default="all", choices=["all", "active", "suspended"],
        help="Suspension filter (admin-users)",
    )
    parser.add_argument("--q", help="Search text (admin-projects, admin-users)")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--db", help="Database URL (default: from config)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command in PROJECT_COMMANDS and not args.project:
        parser.error(f"{args.command} requires --project")
    if args.command != "init-db" and not args.as_user:
        parser.error(f"{args.command} requires --as")
    if args.command == "accept" and not args.applicant:
        parser.error("accept requires --applicant")

    engine = get_engine(args.db)
    if args.command == "init-db":
        init_db(engine)
        engine.dispose()
        return

    try:
        with get_session(engine) as session:
            store = SqlAlchemyStore(session)

            if args.command == "timeline":
                _print_timeline(_load_workspace(store, args.as_user, args.project))

            elif args.command == "milestones":
                _print_milestones(_load_workspace(store, args.as_user, args.project))

            elif args.command == "applicants":
                rows = list_applicants(store, args.as_user, args.project)
                if not rows:
                    print(f"No applicants for project {args.project}")
                for a in rows:
                    print(f"  {a.id}  {a.status:<9} {a.user_id:<12} {a.proposal[:60]}")

            elif args.command == "accept":
                result = accept_applicant(store, args.as_user, args.project, args.applicant)
                if result.applied:
                    print(f"✓ Applicant {args.applicant} accepted")
                else:
                    print(f"Not accepted: {result.reason}")

            elif args.command == "close":
                result = close_project_as_complete(store, args.as_user, args.project)
                if result.applied:
                    print(f"✓ Project {args.project} closed as completed")
                else:
                    print(f"Not closed: {result.reason}")

            elif args.command == "admin-projects":
                rows, pagination = admin_list_projects(
                    store, args.as_user, page=args.page, q=args.q, status=args.status
                )
                for p in rows:
                    print(f"  {p.id}  {p.status:<12} {p.title[:60]}")
                _print_page("projects", pagination)

            elif args.command == "admin-users":
                rows, pagination = admin_list_users(
                    store, args.as_user, page=args.page, q=args.q,
                    role=args.role, suspension=args.suspension,
                )
                for u in rows:
                    state = "active" if u.is_active else "suspended"
                    print(f"  {u.id:<12} {u.role:<12} {state:<10} {u.email}")
                _print_page("users", pagination)
    except WorkspaceError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
