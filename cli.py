from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console

from chains.solana_helius import HeliusWebhookClient
from core.config import load_settings
from core.errors import TokenNotFound
from core.logger import configure_logging
from core.store import TradeStore

console = Console()


def parse_wallet_file(path: Path) -> List[Tuple[str, Optional[str]]]:
    """One wallet per line: `address` or `address,name`. Blank lines and # comments skipped."""
    out: List[Tuple[str, Optional[str]]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        address, _, name = line.partition(",")
        out.append((address.strip(), name.strip() or None))
    return out


def _store() -> TradeStore:
    s = load_settings()
    store = TradeStore(s.database_url)
    store.init_db()
    return store


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("app:app", host=args.host, port=int(args.port))
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    _store()
    console.print("[green]Tables ready[/green]")
    return 0


def cmd_import_wallets(args: argparse.Namespace) -> int:
    wallets = parse_wallet_file(Path(args.file))
    n = _store().upsert_wallets(wallets)
    console.print(f"[green]Imported[/green] {n} wallets")
    return 0


def _webhook_client() -> HeliusWebhookClient:
    s = load_settings()
    return HeliusWebhookClient(s.helius_api_key, s.webhook_url, timeout_sec=s.http_timeout_sec)


def cmd_register_webhook(args: argparse.Namespace) -> int:
    addresses = _store().list_wallet_addresses()
    res = _webhook_client().create_swap_webhook(addresses)
    console.print(f"[green]Webhook created[/green] id={res.get('webhookID')} wallets={len(addresses)}")
    return 0


def cmd_update_webhook(args: argparse.Namespace) -> int:
    addresses = _store().list_wallet_addresses()
    _webhook_client().update_swap_webhook(args.webhook_id, addresses)
    console.print(f"[green]Webhook updated[/green] id={args.webhook_id} wallets={len(addresses)}")
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    from app import build_pipeline

    s = load_settings()
    store = TradeStore(s.database_url)
    store.init_db()
    pipeline = build_pipeline(s, store=store)
    try:
        text = pipeline.report(args.token)
    except TokenNotFound:
        console.print(f"[red]No trading pair for[/red] {args.token}")
        return 1
    console.print(text, markup=False, highlight=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="swap-tracker")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="run the webhook server")
    sp.add_argument("--host", default="0.0.0.0")
    sp.add_argument("--port", default="8000")
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("init-db", help="create tables")
    sp.set_defaults(func=cmd_init_db)

    sp = sub.add_parser("import-wallets", help="load address[,name] lines into the wallet directory")
    sp.add_argument("file")
    sp.set_defaults(func=cmd_import_wallets)

    sp = sub.add_parser("register-webhook", help="create the Helius webhook for all directory wallets")
    sp.set_defaults(func=cmd_register_webhook)

    sp = sub.add_parser("update-webhook", help="replace the address list of an existing webhook")
    sp.add_argument("webhook_id")
    sp.set_defaults(func=cmd_update_webhook)

    sp = sub.add_parser("analyze", help="print the wallet report for a token without sending it")
    sp.add_argument("token")
    sp.set_defaults(func=cmd_analyze)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    s = load_settings()
    configure_logging(s.log_level, "text")
    args = build_parser().parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
