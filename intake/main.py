from __future__ import annotations

import argparse
from pathlib import Path

from dotenv import load_dotenv

from intake.artifacts.writers import write_case_summary
from intake.config import IntakeConfig
from intake.errors import ConflictDetected
from intake.gates.conflicts import ConflictScreener
from intake.oracle import make_adapter
from intake.session import IntakeSession
from intake.state import resolver
from intake.utils.io import write_json
from intake.utils.time import utc_timestamp


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Legal intake controller")
    parser.add_argument("--mode", choices=["mock", "live"], required=True)
    parser.add_argument("--scenario", default="default", help="Canned answers used in mock mode")
    parser.add_argument("--case-id", default=None)
    parser.add_argument("--no-audit", action="store_true", help="Disable the background audit")
    parser.add_argument("--quiet", action="store_true", help="Do not echo session logs")
    return parser


def _ensure_env(config: IntakeConfig) -> None:
    missing = config.missing_api_keys()
    if missing:
        missing_keys = ", ".join(missing)
        raise RuntimeError(
            "Missing required API keys: "
            f"{missing_keys}. Create a .env file from .env.example and set the keys."
        )


def _load_screener(base_dir: Path, config: IntakeConfig) -> ConflictScreener:
    path = config.conflict_registry or base_dir / "configs" / "conflict_registry.yaml"
    if path.exists():
        return ConflictScreener.from_yaml(path)
    print(f"[screener] registry not found at {path}; using built-in client list")
    return ConflictScreener.default()


def _write_run(run_dir: Path, session: IntakeSession) -> None:
    record = session.snapshot()
    write_json(run_dir / "case_record.json", record.to_dict())
    write_json(run_dir / "transcript.json", [message.to_dict() for message in session.messages])
    write_json(run_dir / "api_calls.json", session.log.api_calls_payload())
    write_case_summary(run_dir / "case_summary.md", record)


def main() -> None:
    args = build_parser().parse_args()
    base_dir = Path(__file__).resolve().parents[1]
    load_dotenv(base_dir / ".env")
    config = IntakeConfig.from_env()
    if args.mode == "live":
        _ensure_env(config)

    responder = make_adapter(args.mode, config.responder_provider, "responder", config.oracle_timeout_seconds, args.scenario)
    auditor = make_adapter(args.mode, config.auditor_provider, "auditor", config.audit_timeout_seconds, args.scenario)
    session = IntakeSession(
        responder,
        auditor,
        base_dir / "configs" / "prompts",
        screener=_load_screener(base_dir, config),
        config=config,
        case_id=args.case_id,
        audit_enabled=not args.no_audit,
    )
    session.log.echo = not args.quiet

    print(f"ASSISTANT: {session.messages[0].content}")
    try:
        while True:
            for notice in session.pop_notices():
                print(f"ASSISTANT: {notice.content}")
            try:
                text = input("YOU: ").strip()
            except EOFError:
                break
            if not text:
                continue
            if text in ("/quit", "/exit"):
                break
            if text == "/status":
                completed, total = resolver.progress(session.snapshot())
                print(f"[status] {session.record.status.value} next={session.next_action()} progress={completed}/{total}")
                continue
            if text.startswith("/refer"):
                session.refer(text[len("/refer"):].strip() or "Referred by operator")
                print(f"[status] {session.record.status.value}")
                continue
            try:
                turn = session.submit(text)
            except ConflictDetected as exc:
                print(f"[session] closed: {exc.reason}")
                break
            print(f"ASSISTANT: {turn.response_text}")
            if resolver.is_terminal(turn.next_action):
                session.drain_audits(timeout=config.audit_timeout_seconds)
                if session.next_action() == turn.next_action:
                    break
    finally:
        session.drain_audits(timeout=config.audit_timeout_seconds)
        session.close_case()
        run_dir = base_dir / "runs" / utc_timestamp()
        _write_run(run_dir, session)
        session.close()
        print(f"[session] artifacts written to {run_dir}")


if __name__ == "__main__":
    main()
