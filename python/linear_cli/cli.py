from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TextIO

import httpx

from linear_graphql.errors import (
    LinearAPIError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
)

from . import __version__
from .api import LinearAPI
from .canonical_models import Attachment, Cycle, IssueFilter
from .client import LinearClient
from .config import MissingAPIKeyError, Settings, load_settings, require_api_key, resolve_api_key
from .credentials import CredentialStore, CredentialStoreError, default_store_path
from .downloads import attachment_file_name, download_to_file, unique_path
from .graph.api.resolve import is_likely_id
from .operations import add_comment, close_issue, reopen_issue
from .output import print_json, print_table
from .relations import RelationEdits, split_comma, sync_issue_relations

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_UNAUTHORIZED = 3
EXIT_NOT_FOUND = 4
EXIT_RATE_LIMITED = 5

ApiFactory = Callable[[str, Settings], LinearAPI]
HttpFactory = Callable[[float], httpx.Client]


class UsageError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def version_output() -> str:
    return f"linear version {__version__}"


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, (UnauthorizedError, MissingAPIKeyError)):
        return EXIT_UNAUTHORIZED
    if isinstance(exc, NotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(exc, RateLimitError):
        return EXIT_RATE_LIMITED
    if isinstance(exc, (UsageError, ValueError)):
        return EXIT_USAGE
    return EXIT_FAILURE


def _default_api_factory(api_key: str, settings: Settings) -> LinearAPI:
    return LinearClient.connect(
        api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
        schema_path=settings.schema_path,
        user_agent=f"linear-cli/{__version__}",
    )


def _default_http_factory(timeout_seconds: float) -> httpx.Client:
    return httpx.Client(timeout=timeout_seconds, follow_redirects=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CommandContext:
    args: argparse.Namespace
    stdin: TextIO
    stdout: TextIO
    stderr: TextIO
    environ: Mapping[str, str]
    store: CredentialStore
    api_factory: ApiFactory
    http_factory: HttpFactory
    now: Callable[[], datetime]
    _api: Optional[LinearAPI] = field(default=None, init=False)

    @property
    def settings(self) -> Settings:
        return load_settings(self.args.timeout, self.environ)

    def api_key(self) -> str:
        return require_api_key(self.args.api_key, self.store, self.environ)

    def api(self) -> LinearAPI:
        if self._api is None:
            self._api = self.api_factory(self.api_key(), self.settings)
        return self._api

    def close(self) -> None:
        if self._api is not None:
            self._api.close()

    def emit(self, value: Any, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        if self.args.json:
            print_json(self.stdout, value)
        else:
            print_table(self.stdout, headers, rows)

    def info(self, message: str) -> None:
        if not self.args.quiet:
            self.stdout.write(message + "\n")


def _read_optional_body(value: Optional[str], stdin: TextIO) -> str:
    if not value:
        return ""
    if value != "-":
        return value
    return stdin.read()


def _cmd_auth_login(ctx: CommandContext) -> int:
    api_key = ctx.args.api_key or ""
    if not api_key:
        if ctx.args.no_input:
            raise UsageError("API key required with --no-input")
        if ctx.stdin.isatty():
            ctx.stdout.write("Linear API key: ")
            ctx.stdout.flush()
        api_key = ctx.stdin.readline()
    api_key = api_key.strip()
    if not api_key:
        raise UsageError("API key cannot be empty")

    ctx.store.save(api_key, ctx.now())
    if ctx.args.json:
        print_json(ctx.stdout, {"saved": True, "path": str(ctx.store.path)})
    else:
        ctx.info(f"Saved API key to {ctx.store.path}")
    return EXIT_OK


def _cmd_auth_status(ctx: CommandContext) -> int:
    key, source = resolve_api_key(ctx.args.api_key, ctx.store, ctx.environ)
    authenticated = bool(key)
    if ctx.args.json:
        print_json(ctx.stdout, {"authenticated": authenticated, "source": source})
        return EXIT_OK if authenticated else EXIT_UNAUTHORIZED
    if authenticated:
        ctx.stdout.write(f"Authenticated via {source}\n")
        return EXIT_OK
    ctx.stdout.write("Not authenticated\n")
    ctx.stderr.write("no API key configured\n")
    return EXIT_UNAUTHORIZED


def _cmd_auth_logout(ctx: CommandContext) -> int:
    ctx.store.delete()
    if ctx.args.json:
        print_json(ctx.stdout, {"deleted": True, "path": str(ctx.store.path)})
    else:
        ctx.info("Logged out")
    return EXIT_OK


def _cmd_whoami(ctx: CommandContext) -> int:
    user = ctx.api().me()
    ctx.emit(user, ["ID", "Name", "Email"], [[user.id, user.name, user.email]])
    return EXIT_OK


def _cmd_team_list(ctx: CommandContext) -> int:
    teams = ctx.api().teams()
    ctx.emit(teams, ["ID", "Key", "Name"], [[t.id, t.key, t.name] for t in teams])
    return EXIT_OK


def _cmd_issue_list(ctx: CommandContext) -> int:
    args = ctx.args
    api = ctx.api()
    issue_filter = IssueFilter()
    if args.team:
        issue_filter = replace(issue_filter, team_id=api.resolve_team_id(args.team))
    if args.assignee:
        issue_filter = replace(issue_filter, assignee_id=api.resolve_user_id(args.assignee))
    if args.state:
        if not issue_filter.team_id and is_likely_id(args.state):
            issue_filter = replace(issue_filter, state_id=args.state)
        elif not issue_filter.team_id:
            raise UsageError("--state requires --team to resolve state name")
        else:
            issue_filter = replace(
                issue_filter, state_id=api.resolve_state_id(issue_filter.team_id, args.state)
            )
    if args.label:
        issue_filter = replace(issue_filter, label_ids=api.resolve_label_ids(split_comma(args.label)))
    if args.project:
        issue_filter = replace(issue_filter, project_id=api.resolve_project_id(args.project))
    if args.cycle:
        if not issue_filter.team_id and is_likely_id(args.cycle):
            issue_filter = replace(issue_filter, cycle_id=args.cycle)
        elif not issue_filter.team_id:
            raise UsageError("--cycle requires --team to resolve 'current'")
        else:
            issue_filter = replace(
                issue_filter, cycle_id=api.resolve_cycle_id(issue_filter.team_id, args.cycle)
            )
    if args.search:
        issue_filter = replace(issue_filter, search=args.search)
    if args.priority >= 0:
        issue_filter = replace(issue_filter, priority=args.priority)

    page = api.issues(issue_filter, args.limit, args.after or "")
    rows = [
        [i.identifier, i.title, i.state, i.assignee, i.team_key, i.cycle] for i in page.nodes
    ]
    ctx.emit(page, ["ID", "Title", "State", "Assignee", "Team", "Cycle"], rows)
    return EXIT_OK


def _upload_label(attachment: Attachment) -> str:
    name = attachment.title or attachment.file_name or attachment.url or attachment.id
    if attachment.url and attachment.url != name:
        return f"- {name} ({attachment.url})"
    return f"- {name}"


def _cmd_issue_view(ctx: CommandContext) -> int:
    args = ctx.args
    api = ctx.api()
    issue = api.issue(args.issue_id)
    if args.comments:
        issue = replace(issue, comments=api.issue_comments(issue.id, args.comments_limit))
    if args.uploads:
        issue = replace(issue, uploads=api.issue_uploads(issue.id, args.uploads_limit))

    if args.json:
        print_json(ctx.stdout, issue)
        return EXIT_OK

    out = ctx.stdout
    print_table(
        out,
        ["ID", "Title", "State", "Assignee", "Team", "Cycle", "Project", "Priority"],
        [[
            issue.identifier, issue.title, issue.state, issue.assignee,
            issue.team_key, issue.cycle, issue.project, issue.priority,
        ]],
    )
    if issue.url:
        out.write(f"\nURL: {issue.url}\n")
    if issue.labels:
        out.write(f"Labels: {', '.join(issue.labels)}\n")
    if issue.description:
        out.write(f"\nDescription:\n{issue.description}\n")
    if args.uploads:
        if not issue.uploads:
            out.write("\nUploads: none\n")
        else:
            out.write("\nUploads:\n")
            for attachment in issue.uploads:
                out.write(_upload_label(attachment) + "\n")
    if issue.created_at or issue.updated_at:
        out.write(f"\nCreated: {issue.created_at}\nUpdated: {issue.updated_at}\n")
    if args.comments and issue.comments:
        out.write("\nComments:\n")
        for comment in issue.comments:
            author = comment.user_name or comment.user_email
            body = comment.body or comment.body_data
            if author:
                out.write(f"- {author} ({comment.created_at}): {body}\n")
            else:
                out.write(f"- {comment.created_at}: {body}\n")
    return EXIT_OK


def _issue_fields(
    ctx: CommandContext, api: LinearAPI, team_id: Callable[[], str]
) -> Dict[str, Any]:
    """Shared create/update input fields; ``team_id`` is only called when needed."""
    args = ctx.args
    fields: Dict[str, Any] = {}
    if args.title:
        fields["title"] = args.title
    description = _read_optional_body(args.description, ctx.stdin)
    if description:
        fields["description"] = description
    if args.assignee:
        fields["assigneeId"] = api.resolve_user_id(args.assignee)
    if args.state:
        fields["stateId"] = api.resolve_state_id(team_id(), args.state)
    if args.priority >= 0:
        fields["priority"] = args.priority
    if args.project:
        fields["projectId"] = api.resolve_project_id(args.project)
    if args.cycle:
        fields["cycleId"] = api.resolve_cycle_id(team_id(), args.cycle)
    if args.labels:
        fields["labelIds"] = api.resolve_label_ids(split_comma(args.labels))
    return fields


def _emit_issue(ctx: CommandContext, issue: Any) -> None:
    ctx.emit(issue, ["ID", "Title", "URL"], [[issue.identifier, issue.title, issue.url]])


def _cmd_issue_create(ctx: CommandContext) -> int:
    args = ctx.args
    if not args.team:
        raise UsageError("--team is required")
    if not args.title:
        raise UsageError("--title is required")
    api = ctx.api()
    team_id = api.resolve_team_id(args.team)
    issue_input: Dict[str, Any] = {"teamId": team_id}
    issue_input.update(_issue_fields(ctx, api, lambda: team_id))

    issue = api.issue_create(issue_input)
    sync_issue_relations(
        api,
        issue.id,
        RelationEdits.from_csv(blocks=args.blocks, blocked_by=args.blocked_by),
        fetch_existing=False,
    )
    _emit_issue(ctx, issue)
    return EXIT_OK


def _cmd_issue_update(ctx: CommandContext) -> int:
    args = ctx.args
    api = ctx.api()
    issue_id = api.resolve_issue_id(args.issue_id)
    resolved_team: List[str] = []
    if args.team:
        resolved_team.append(api.resolve_team_id(args.team))

    def team_id() -> str:
        if not resolved_team:
            resolved_team.append(api.issue(args.issue_id).team_id)
        return resolved_team[0]

    issue_input: Dict[str, Any] = {"id": issue_id}
    issue_input.update(_issue_fields(ctx, api, team_id))
    issue = api.issue_update(issue_input)
    sync_issue_relations(
        api,
        issue_id,
        RelationEdits.from_csv(
            blocks=args.blocks,
            blocked_by=args.blocked_by,
            remove_blocks=args.remove_blocks,
            remove_blocked_by=args.remove_blocked_by,
        ),
        fetch_existing=True,
    )
    _emit_issue(ctx, issue)
    return EXIT_OK


def _cmd_issue_close(ctx: CommandContext) -> int:
    _emit_issue(ctx, close_issue(ctx.api(), ctx.args.issue_id))
    return EXIT_OK


def _cmd_issue_reopen(ctx: CommandContext) -> int:
    _emit_issue(ctx, reopen_issue(ctx.api(), ctx.args.issue_id))
    return EXIT_OK


def _cmd_issue_comment(ctx: CommandContext) -> int:
    body = _read_optional_body(ctx.args.body, ctx.stdin)
    if not body.strip():
        raise UsageError("comment body is required")
    comment_id = add_comment(ctx.api(), ctx.args.issue_id, body)
    if ctx.args.json:
        print_json(ctx.stdout, {"id": comment_id})
    else:
        ctx.info(f"Comment added: {comment_id}")
    return EXIT_OK


def _cmd_issue_uploads(ctx: CommandContext) -> int:
    args = ctx.args
    api = ctx.api()
    issue_id = api.resolve_issue_id(args.issue_id)
    uploads = api.issue_uploads(issue_id, args.limit)
    if not uploads:
        ctx.info("No uploads found")
        return EXIT_OK

    directory = Path(args.dir or "attachments")
    directory.mkdir(parents=True, exist_ok=True)
    api_key = ctx.api_key()
    results = []
    with ctx.http_factory(ctx.settings.timeout_seconds) as http_client:
        for attachment in uploads:
            if not attachment.url:
                continue
            target = unique_path(directory / attachment_file_name(attachment), args.overwrite)
            path = download_to_file(http_client, attachment.url, target, api_key=api_key)
            results.append((attachment, path))

    if args.json:
        payload = []
        for attachment, path in results:
            item = {"id": attachment.id, "title": attachment.title, "url": attachment.url}
            item["file_name"] = attachment.file_name
            item["path"] = str(path)
            payload.append(item)
        print_json(ctx.stdout, payload)
    else:
        print_table(
            ctx.stdout,
            ["ID", "Title", "Path"],
            [[attachment.id, attachment.title, str(path)] for attachment, path in results],
        )
    return EXIT_OK


def _cycle_row(cycle: Cycle) -> List[Any]:
    return [
        cycle.id, cycle.name, cycle.number, cycle.starts_at, cycle.ends_at,
        "true" if cycle.is_active else "false",
    ]


_CYCLE_HEADERS = ["ID", "Name", "Number", "Starts", "Ends", "Active"]


def _cmd_cycle_list(ctx: CommandContext) -> int:
    args = ctx.args
    if not args.team:
        raise UsageError("--team is required")
    api = ctx.api()
    team_id = api.resolve_team_id(args.team)
    page = api.cycles(team_id, args.current, args.limit, args.after or "")
    ctx.emit(page, _CYCLE_HEADERS, [_cycle_row(cycle) for cycle in page.nodes])
    if page.truncated and not args.json:
        ctx.stderr.write("warning: more cycles may be active on later pages\n")
    return EXIT_OK


def _cmd_cycle_view(ctx: CommandContext) -> int:
    cycle = ctx.api().cycle(ctx.args.cycle_id)
    ctx.emit(cycle, _CYCLE_HEADERS, [_cycle_row(cycle)])
    return EXIT_OK


def _add_issue_input_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--team", help="Team key or ID")
    parser.add_argument("--title", help="Issue title")
    parser.add_argument("--description", help="Issue description or '-' for stdin")
    parser.add_argument("--assignee", help="Assignee (me, id, or email)")
    parser.add_argument("--state", help="Workflow state name or ID")
    parser.add_argument("--priority", type=int, default=-1, help="Priority (0-4)")
    parser.add_argument("--project", help="Project name or ID")
    parser.add_argument("--cycle", help="Cycle ID or 'current'")
    parser.add_argument("--labels", help="Comma-separated label names or IDs")
    parser.add_argument("--blocks", help="Comma-separated issues this issue blocks")
    parser.add_argument("--blocked-by", help="Comma-separated issues blocking this issue")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="linear", description="Manage Linear issues and cycles from the terminal"
    )
    parser.add_argument("--json", action="store_true", help="output JSON")
    parser.add_argument("-q", "--quiet", action="store_true", help="suppress non-essential output")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable verbose diagnostics")
    parser.add_argument("--no-input", action="store_true", help="disable interactive prompts")
    parser.add_argument(
        "--timeout", type=float, default=None, help="API request timeout in seconds (default 10)"
    )
    parser.add_argument("--api-key", help="Linear API key (overrides env and stored auth)")
    parser.add_argument("--version", action="store_true", help="Print version and exit")

    commands = parser.add_subparsers(dest="command", parser_class=_ArgumentParser)

    auth = commands.add_parser("auth", help="Manage authentication")
    auth_commands = auth.add_subparsers(dest="subcommand", parser_class=_ArgumentParser)
    auth_commands.add_parser("login", help="Store a Linear API key").set_defaults(
        handler=_cmd_auth_login
    )
    auth_commands.add_parser("status", help="Show authentication status").set_defaults(
        handler=_cmd_auth_status
    )
    auth_commands.add_parser("logout", help="Remove stored authentication").set_defaults(
        handler=_cmd_auth_logout
    )

    commands.add_parser("whoami", help="Show current Linear user").set_defaults(
        handler=_cmd_whoami
    )

    team = commands.add_parser("team", help="Manage teams")
    team_commands = team.add_subparsers(dest="subcommand", parser_class=_ArgumentParser)
    team_commands.add_parser("list", help="List teams").set_defaults(handler=_cmd_team_list)

    issue = commands.add_parser("issue", help="Manage issues")
    issue_commands = issue.add_subparsers(dest="subcommand", parser_class=_ArgumentParser)

    issue_list = issue_commands.add_parser("list", help="List issues")
    issue_list.add_argument("--team", help="Team key or ID")
    issue_list.add_argument("--assignee", help="Assignee (me, id, or email)")
    issue_list.add_argument("--state", help="Workflow state name or ID")
    issue_list.add_argument("--label", help="Comma-separated label names or IDs")
    issue_list.add_argument("--project", help="Project name or ID")
    issue_list.add_argument("--cycle", help="Cycle ID or 'current'")
    issue_list.add_argument("--search", help="Search issue titles")
    issue_list.add_argument("--priority", type=int, default=-1, help="Priority (0-4)")
    issue_list.add_argument("--limit", type=int, default=50, help="Maximum number of issues")
    issue_list.add_argument("--after", help="Pagination cursor")
    issue_list.set_defaults(handler=_cmd_issue_list)

    issue_view = issue_commands.add_parser("view", help="View issue details")
    issue_view.add_argument("issue_id", metavar="issue-id")
    issue_view.add_argument("--comments", action="store_true", help="Include comments")
    issue_view.add_argument("--comments-limit", type=int, default=20)
    issue_view.add_argument("--uploads", action="store_true", help="Include uploads")
    issue_view.add_argument("--uploads-limit", type=int, default=50)
    issue_view.set_defaults(handler=_cmd_issue_view)

    issue_create = issue_commands.add_parser("create", help="Create an issue")
    _add_issue_input_flags(issue_create)
    issue_create.set_defaults(handler=_cmd_issue_create)

    issue_update = issue_commands.add_parser("update", help="Update an issue")
    issue_update.add_argument("issue_id", metavar="issue-id")
    _add_issue_input_flags(issue_update)
    issue_update.add_argument("--remove-blocks", help="Comma-separated issues to stop blocking")
    issue_update.add_argument(
        "--remove-blocked-by", help="Comma-separated issues to remove as blockers"
    )
    issue_update.set_defaults(handler=_cmd_issue_update)

    for name, handler, help_text in (
        ("close", _cmd_issue_close, "Close an issue"),
        ("reopen", _cmd_issue_reopen, "Reopen an issue"),
    ):
        sub = issue_commands.add_parser(name, help=help_text)
        sub.add_argument("issue_id", metavar="issue-id")
        sub.set_defaults(handler=handler)

    issue_comment = issue_commands.add_parser("comment", help="Add a comment to an issue")
    issue_comment.add_argument("issue_id", metavar="issue-id")
    issue_comment.add_argument("--body", help="Comment body or '-' for stdin")
    issue_comment.set_defaults(handler=_cmd_issue_comment)

    issue_uploads = issue_commands.add_parser(
        "uploads", help="Download issue uploads from the issue description and comments"
    )
    issue_uploads.add_argument("issue_id", metavar="issue-id")
    issue_uploads.add_argument("--dir", default="attachments", help="Directory to save files")
    issue_uploads.add_argument("--limit", type=int, default=50, help="Maximum comments to scan")
    issue_uploads.add_argument("--overwrite", action="store_true", help="Overwrite existing files")
    issue_uploads.set_defaults(handler=_cmd_issue_uploads)

    cycle = commands.add_parser("cycle", help="Manage cycles")
    cycle_commands = cycle.add_subparsers(dest="subcommand", parser_class=_ArgumentParser)
    cycle_list = cycle_commands.add_parser("list", help="List cycles for a team")
    cycle_list.add_argument("--team", help="Team key or ID")
    cycle_list.add_argument("--current", action="store_true", help="Only show active cycles")
    cycle_list.add_argument("--limit", type=int, default=20)
    cycle_list.add_argument("--after", help="Pagination cursor")
    cycle_list.set_defaults(handler=_cmd_cycle_list)
    cycle_view = cycle_commands.add_parser("view", help="View cycle details")
    cycle_view.add_argument("cycle_id", metavar="cycle-id")
    cycle_view.set_defaults(handler=_cmd_cycle_view)

    return parser


def _configure_logging(verbose: bool, stream: TextIO) -> None:
    if not verbose:
        return
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    for name in ("linear_graphql", "linear_cli"):
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    environ: Optional[Mapping[str, str]] = None,
    store: Optional[CredentialStore] = None,
    api_factory: Optional[ApiFactory] = None,
    http_factory: Optional[HttpFactory] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    env = os.environ if environ is None else environ

    parser = build_parser()
    try:
        args = parser.parse_args(list(sys.argv[1:] if argv is None else argv))
    except UsageError as exc:
        stderr.write(f"linear: error: {exc}\n")
        return EXIT_USAGE
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_OK

    if args.version:
        stdout.write(version_output() + "\n")
        return EXIT_OK
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_usage(stderr)
        return EXIT_USAGE

    _configure_logging(args.verbose, stderr)
    ctx = CommandContext(
        args=args,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
        environ=env,
        store=store or CredentialStore(default_store_path(dict(env))),
        api_factory=api_factory or _default_api_factory,
        http_factory=http_factory or _default_http_factory,
        now=now or _utcnow,
    )
    try:
        return handler(ctx)
    except (
        LinearAPIError,
        MissingAPIKeyError,
        CredentialStoreError,
        UsageError,
        ValueError,
        OSError,
    ) as exc:
        stderr.write(f"{exc}\n")
        return exit_code_for(exc)
    finally:
        ctx.close()


if __name__ == "__main__":
    raise SystemExit(main())
