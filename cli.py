from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, replace

from disconsulate import DiscoveryError, Disconsulate, Settings
from disconsulate.db import EventLog
from disconsulate.watch import WatchStatus


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _add_query_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("service")
    p.add_argument("--near", default="agent")
    p.add_argument("--passing", type=int, default=1, choices=[0, 1])
    p.add_argument("--tag", action="append", default=[], help="Required tag (repeatable)")
    p.add_argument("--dc", default=None, help="Datacenter")
    p.add_argument("--node-meta", action="append", default=[], metavar="KEY:VALUE", help="Node metadata filter (repeatable)")


def _options(args: argparse.Namespace) -> dict:
    node_meta = {}
    for pair in args.node_meta:
        k, sep, v = pair.partition(":")
        if not sep or not k:
            raise SystemExit(f"--node-meta expects KEY:VALUE, got '{pair}'")
        node_meta[k] = v
    opts = {"near": args.near, "passing": args.passing, "tags": args.tag, "node_meta": node_meta}
    if args.dc is not None:
        opts["dc"] = args.dc
    return opts


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Disconsulate service discovery CLI")
    p.add_argument("--consul", default=None, help="Registry base URL (default: CONSUL_ADDR or http://consul:8500)")
    p.add_argument("--strict", action="store_true", help="Percent-encode query values")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_res = sub.add_parser("resolve", help="Resolve a service to endpoints")
    _add_query_args(s_res)
    s_res.add_argument("--count", type=int, default=1, help="Number of round-robin picks to print")

    s_watch = sub.add_parser("watch", help="Print change/error/fail notifications as JSON lines")
    _add_query_args(s_watch)

    s_ev = sub.add_parser("events", help="Show events recorded in a sqlite event log")
    s_ev.add_argument("--db", required=True, help="Path of the event log database")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--level", default=None)

    args = p.parse_args(argv)

    if args.cmd == "events":
        _print([asdict(r) for r in EventLog(args.db).latest(limit=args.limit, level=args.level)])
        return 0

    settings = Settings.from_env()
    if args.strict:
        settings = replace(settings, strict_query=True)

    with Disconsulate(args.consul, settings=settings) as client:
        if args.cmd == "resolve":
            try:
                picks = [client.resolve(args.service, **_options(args)).to_dict() for _ in range(max(1, args.count))]
            except DiscoveryError as e:
                print(f"error: {e}", file=sys.stderr)
                return 1
            _print(picks)
            return 0

        if args.cmd == "watch":
            client.subscribe(lambda ev: print(json.dumps(ev.to_dict(), ensure_ascii=False), flush=True))
            try:
                client.resolve(args.service, **_options(args))
            except DiscoveryError as e:
                print(f"error: {e}", file=sys.stderr)
                return 1
            watch = client.watch_for(args.service, **_options(args))
            try:
                while watch is not None and watch.alive:
                    watch.join(0.5)
            except KeyboardInterrupt:
                return 0
            return 1 if watch is not None and watch.status is WatchStatus.TERMINATED else 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
