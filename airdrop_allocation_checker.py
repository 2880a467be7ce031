#!/usr/bin/env python3
"""
Airdrop Allocation Checker
Batch checker for token-airdrop allocations exposed by a claim contract's view functions.

Features
- Reads addresses from a file (one address per line); blank and malformed lines are skipped.
- Reads calculateAllocation / hasClaimed / CLAIM_END / TOKEN for every address over JSON-RPC.
  The four reads of one address run concurrently; addresses are paced one at a time.
- A failed address becomes an "Error" row and never aborts the batch.
- Prints a table, totals, the claim window and a top-3 ranking; optional JSON output.

Notes
- Override the RPC endpoint via LINEA_RPC_URL or --rpc.
- Public endpoints rate-limit; keep --delay above zero.
- Nothing is retried: a read that fails marks the whole address as failed.
"""
import os, sys, json, time, argparse
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests
from web3 import Web3

NETWORKS = {
    "linea": {
        "name": "Linea Mainnet",
        "rpc": "https://rpc.linea.build",
        "env": "LINEA_RPC_URL",
        "contract": "0x87baa1694381ae3ecae2660d97fe60404080eb64",
        "decimals": 18,
    },
}

AIRDROP_ABI = [
    {
        "name": "calculateAllocation",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_account", "type": "address"}],
        "outputs": [{"name": "tokenAllocation", "type": "uint256"}],
    },
    {
        "name": "hasClaimed",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "claimed", "type": "bool"}],
    },
    {
        "name": "CLAIM_END",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "TOKEN",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

ERROR = "Error"
YES, NO = "Yes", "No"
EXPIRED = "Expired"
MEDALS = ("🥇", "🥈", "🥉")

COLORS = {
    "reset": "\x1b[0m",
    "bright": "\x1b[1m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "cyan": "\x1b[36m",
}

TABLE_COLUMNS = (("Address", 20), ("Allocation", 30), ("Claimed", 24))
RULE_WIDTH = 80
DISPLAY_PLACES = 6


class AllocationQueryError(Exception):
    """One or more contract reads for an address failed."""

    def __init__(self, address: str, message: str):
        super().__init__(f"{address}: {message}")
        self.address = address
        self.message = message


@dataclass(frozen=True)
class CheckerConfig:
    endpoint: str
    contract_address: str
    decimals: int = 18
    timeout: float = 20.0
    delay: float = 0.1
    concurrency: int = 1
    network: str = "linea"

    def __post_init__(self):
        if not self.endpoint:
            raise ValueError("an RPC endpoint is required")
        if not Web3.is_address(self.contract_address):
            raise ValueError(f"invalid contract address: {self.contract_address!r}")
        object.__setattr__(self, "contract_address", Web3.to_checksum_address(self.contract_address))
        if self.decimals < 0:
            raise ValueError("decimals must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")

    @classmethod
    def from_network(
        cls,
        network: str = "linea",
        endpoint: Optional[str] = None,
        contract_address: Optional[str] = None,
        decimals: Optional[int] = None,
        **kwargs: Any,
    ) -> "CheckerConfig":
        """Fill unset options from the environment, then from NETWORKS."""
        if network not in NETWORKS:
            raise ValueError(f"unknown network: {network!r}")
        cfg = NETWORKS[network]
        return cls(
            endpoint=endpoint or os.environ.get(cfg["env"], "") or cfg["rpc"],
            contract_address=contract_address or cfg["contract"],
            decimals=cfg["decimals"] if decimals is None else decimals,
            network=network,
            **kwargs,
        )


@dataclass(frozen=True)
class RawAllocation:
    allocation: int
    claimed: bool
    claim_deadline: int
    token_address: str


@dataclass(frozen=True)
class QueryOutcome:
    address: str
    raw: Optional[RawAllocation] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.raw is not None


@dataclass(frozen=True)
class AllocationResult:
    address: str
    allocation: str
    claimed: str
    expired: str
    claim_deadline: str
    token_address: str
    time_left: str
    raw_allocation: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ReportSummary:
    total_raw: int
    total_allocation: str
    claimed_count: int
    error_count: int
    top: Tuple[AllocationResult, ...]
    top_n: int = 3
    window: Optional[AllocationResult] = None


def utc_iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def paint(text: str, *styles: str, enabled: bool = True) -> str:
    if not enabled or not styles:
        return text
    return "".join(COLORS[s] for s in styles) + text + COLORS["reset"]


def short_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


# ---------------------------------------------------------------- input

def load_addresses(path: str) -> List[str]:
    """Return the valid addresses of `path` in file order, checksummed.

    Blank and malformed lines are dropped, repeats are kept. An unreadable
    file yields an empty list; the caller decides whether that ends the run.
    """
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        print(f"Could not read {path}: {e}", file=sys.stderr)
        return []
    out = []
    for line in lines:
        s = line.strip()
        if s and Web3.is_address(s):
            out.append(Web3.to_checksum_address(s))
    return out


# ---------------------------------------------------------------- queries

def describe_error(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class AllocationQueryClient:
    """Reads one address's airdrop state from the claim contract.

    Every read goes through one shared HTTP session. The four reads of an
    address are issued together and the address fails on the first error.
    Each address gets its own read pool, so a read still in flight after a
    failure never delays the next address. CLAIM_END and TOKEN are re-read
    for every address.
    """

    READS = 4

    def __init__(self, config: CheckerConfig, contract: Any = None, session: Optional[requests.Session] = None):
        self.config = config
        self._owns_session = session is None
        self.session = session or requests.Session()
        if contract is None:
            provider = Web3.HTTPProvider(
                config.endpoint,
                request_kwargs={"timeout": config.timeout},
                session=self.session,
                exception_retry_configuration=None,
            )
            contract = Web3(provider).eth.contract(address=config.contract_address, abi=AIRDROP_ABI)
        self.contract = contract

    def _read(self, name: str, *args: Any) -> Any:
        return getattr(self.contract.functions, name)(*args).call()

    def fetch(self, address: str) -> RawAllocation:
        pool = ThreadPoolExecutor(max_workers=self.READS, thread_name_prefix="allocation-read")
        try:
            futures = [
                pool.submit(self._read, "calculateAllocation", address),
                pool.submit(self._read, "hasClaimed", address),
                pool.submit(self._read, "CLAIM_END"),
                pool.submit(self._read, "TOKEN"),
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        for future in futures:
            if future in done and future.exception() is not None:
                exc = future.exception()
                raise AllocationQueryError(address, describe_error(exc)) from exc
        allocation, claimed, deadline, token = (f.result() for f in futures)
        return RawAllocation(
            allocation=int(allocation),
            claimed=bool(claimed),
            claim_deadline=int(deadline),
            token_address=str(token),
        )

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "AllocationQueryClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def check_address(client: AllocationQueryClient, address: str) -> QueryOutcome:
    try:
        raw = client.fetch(address)
    except AllocationQueryError as e:
        print(f"\nError checking {address}: {e.message}", file=sys.stderr)
        return QueryOutcome(address=address, error=e.message)
    return QueryOutcome(address=address, raw=raw)


def throttled_map(
    fn: Callable[[Any], Any],
    items: Iterable[Any],
    concurrency: int = 1,
    delay: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
    progress: Optional[Callable[[int, int, Any], None]] = None,
) -> List[Any]:
    """Apply `fn` to each item with at most `concurrency` calls in flight
    and `delay` seconds between call starts. Results keep input order."""
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    items = list(items)
    total = len(items)

    if concurrency == 1:
        results = []
        for i, item in enumerate(items, 1):
            if i > 1 and delay:
                sleep(delay)
            if progress:
                progress(i, total, item)
            results.append(fn(item))
        return results

    slots = threading.BoundedSemaphore(concurrency)
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = []
        for i, item in enumerate(items, 1):
            slots.acquire()
            if i > 1 and delay:
                sleep(delay)
            if progress:
                progress(i, total, item)
            future = pool.submit(fn, item)
            future.add_done_callback(lambda _: slots.release())
            futures.append(future)
        return [f.result() for f in futures]


# ---------------------------------------------------------------- aggregation

def format_token_amount(raw: int, decimals: int = 18, places: int = DISPLAY_PLACES) -> str:
    with localcontext() as ctx:
        ctx.prec = 100
        value = Decimal(raw).scaleb(-decimals)
        return str(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def time_remaining(deadline: int, now: int) -> str:
    if now > deadline:
        return EXPIRED
    days, rest = divmod(deadline - now, 86400)
    return f"{days}d {rest // 3600}h"


def format_deadline(ts: int) -> str:
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (OverflowError, OSError, ValueError):
        return str(ts)


def failed_result(address: str, error: Optional[str] = None) -> AllocationResult:
    return AllocationResult(
        address=address,
        allocation=ERROR,
        claimed=ERROR,
        expired=ERROR,
        claim_deadline=ERROR,
        token_address=ERROR,
        time_left=ERROR,
        raw_allocation=0,
        error=error or "query failed",
    )


def build_result(outcome: QueryOutcome, now: int, decimals: int = 18) -> AllocationResult:
    if not outcome.ok:
        return failed_result(outcome.address, outcome.error)
    raw = outcome.raw
    return AllocationResult(
        address=outcome.address,
        allocation=format_token_amount(raw.allocation, decimals),
        claimed=YES if raw.claimed else NO,
        expired=YES if now > raw.claim_deadline else NO,
        claim_deadline=format_deadline(raw.claim_deadline),
        token_address=raw.token_address,
        time_left=time_remaining(raw.claim_deadline, now),
        raw_allocation=raw.allocation,
    )


def aggregate(outcomes: Sequence[QueryOutcome], now: int, decimals: int = 18) -> List[AllocationResult]:
    """One result per outcome, in order, all evaluated against the same `now`."""
    return [build_result(o, now, decimals) for o in outcomes]


# ---------------------------------------------------------------- report

def displayed_amount(r: AllocationResult) -> Decimal:
    """The rounded amount a row shows; zero for failed rows."""
    return Decimal(r.allocation) if r.ok else Decimal(0)


def summarize(results: Sequence[AllocationResult], decimals: int = 18, top_n: int = 3) -> ReportSummary:
    total_raw = sum(r.raw_allocation for r in results)
    ranked = sorted(
        (r for r in results if displayed_amount(r) > 0),
        key=displayed_amount,
        reverse=True,
    )
    return ReportSummary(
        total_raw=total_raw,
        total_allocation=format_token_amount(total_raw, decimals),
        claimed_count=sum(1 for r in results if r.claimed == YES),
        error_count=sum(1 for r in results if not r.ok),
        top=tuple(ranked[:top_n]),
        top_n=top_n,
        window=next((r for r in results if r.ok), None),
    )


def _row(cells: Sequence[Tuple[str, Tuple[str, ...]]], color: bool) -> str:
    # pad the visible text first, styling codes have no width
    return " | ".join(
        paint(text.ljust(width), *styles, enabled=color)
        for (text, styles), (_, width) in zip(cells, TABLE_COLUMNS)
    )


def _allocation_styles(r: AllocationResult) -> Tuple[str, ...]:
    if not r.ok:
        return ("red",)
    return ("green",) if displayed_amount(r) > 0 else ("yellow",)


def _claimed_styles(r: AllocationResult) -> Tuple[str, ...]:
    if r.claimed == YES:
        return ("green",)
    return ("red",) if r.claimed == ERROR else ("yellow",)


def render_report(results: Sequence[AllocationResult], summary: ReportSummary, color: bool = True) -> str:
    lines = [
        "=" * RULE_WIDTH,
        paint("🎯 AIRDROP ALLOCATION RESULTS", "bright", "cyan", enabled=color),
        "=" * RULE_WIDTH,
        _row([(name, ("bright",)) for name, _ in TABLE_COLUMNS], color),
        "-" * RULE_WIDTH,
    ]
    for r in results:
        lines.append(_row([
            (short_address(r.address), ("blue",)),
            (r.allocation, _allocation_styles(r)),
            (r.claimed, _claimed_styles(r)),
        ], color))
    lines.append("-" * RULE_WIDTH)

    lines.append(paint("📊 SUMMARY:", "bright", enabled=color))
    lines.append(paint(f"• Total allocation: {summary.total_allocation} tokens", "green", enabled=color))
    lines.append(paint(f"• Already claimed: {summary.claimed_count} addresses", "blue", enabled=color))
    if summary.error_count > 0:
        lines.append(paint(f"• Errors: {summary.error_count} addresses", "red", enabled=color))

    if summary.window is not None:
        w = summary.window
        left = w.time_left if w.time_left == EXPIRED else f"{w.time_left} left"
        lines.append("")
        lines.append(paint("⏰ CLAIM WINDOW:", "bright", enabled=color))
        lines.append(f"• Token: {w.token_address}")
        lines.append(f"• Deadline: {w.claim_deadline} ({left})")

    if summary.top:
        lines.append("")
        lines.append(paint(f"🏆 TOP-{summary.top_n} ALLOCATIONS:", "bright", enabled=color))
        for i, r in enumerate(summary.top):
            marker = MEDALS[i] if i < len(MEDALS) else f"{i + 1}."
            amount = paint(r.allocation, "green", enabled=color)
            lines.append(f"{marker} {short_address(r.address)}: {amount} tokens")

    lines.append("=" * RULE_WIDTH)
    return "\n".join(lines)


def report_to_dict(
    config: CheckerConfig,
    results: Sequence[AllocationResult],
    summary: ReportSummary,
    now: int,
) -> Dict[str, Any]:
    return {
        "network": config.network,
        "contract": config.contract_address,
        "checked_at": utc_iso(now),
        "results": [asdict(r) for r in results],
        "summary": {
            "total_allocation": summary.total_allocation,
            "total_raw": summary.total_raw,
            "claimed_count": summary.claimed_count,
            "error_count": summary.error_count,
            "top": [r.address for r in summary.top],
        },
    }


# ---------------------------------------------------------------- cli

def show_progress(index: int, total: int, address: str, color: bool = True) -> None:
    label = paint(f"Checking {index}/{total}:", "cyan", enabled=color)
    sys.stderr.write(f"\r{label} {short_address(address)}")
    sys.stderr.flush()


def run(
    config: CheckerConfig,
    wallets_path: str,
    client_factory: Callable[[CheckerConfig], AllocationQueryClient] = AllocationQueryClient,
    clock: Callable[[], float] = time.time,
    top_n: int = 3,
    color: bool = True,
    json_out: str = "",
) -> int:
    net = NETWORKS[config.network]
    print(paint("🚀 Starting airdrop allocation checker...", "bright", "cyan", enabled=color))
    print(paint(f"📋 Contract: {config.contract_address}", "yellow", enabled=color))
    print(paint(f"🌐 Network: {net['name']} ({config.endpoint})", "yellow", enabled=color))
    print()

    wallets = load_addresses(wallets_path)
    if not wallets:
        print(paint(f"❌ No valid addresses found in {wallets_path}", "red", enabled=color), file=sys.stderr)
        print(paint(f"💡 Create {wallets_path} with one wallet address per line", "yellow", enabled=color),
              file=sys.stderr)
        return 0

    print(paint(f"📋 Found {len(wallets)} addresses to check", "green", enabled=color))
    with client_factory(config) as client:
        outcomes = throttled_map(
            lambda a: check_address(client, a),
            wallets,
            concurrency=config.concurrency,
            delay=config.delay,
            progress=lambda i, n, a: show_progress(i, n, a, color),
        )
    print(file=sys.stderr)

    now = int(clock())
    results = aggregate(outcomes, now, config.decimals)
    summary = summarize(results, config.decimals, top_n)
    print(render_report(results, summary, color=color))

    if json_out:
        with open(json_out, "w", encoding="utf-8") as f:
            json.dump(report_to_dict(config, results, summary, now), f, indent=2, ensure_ascii=False)
        print(f"Wrote {json_out}")

    print(paint("✅ Check complete!", "green", enabled=color))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Airdrop Allocation Checker (EVM claim contracts)")
    ap.add_argument("--wallets", default="wallets.txt", help="file with one address per line")
    ap.add_argument("--network", choices=sorted(NETWORKS.keys()), default="linea", help="target network")
    ap.add_argument("--rpc", default="", help="RPC endpoint (default: the network's env var, then its public RPC)")
    ap.add_argument("--contract", default="", help="airdrop claim contract address")
    ap.add_argument("--decimals", type=int, default=None, help="token decimals used to scale allocations")
    ap.add_argument("--delay", type=float, default=0.1, help="seconds between address queries")
    ap.add_argument("--concurrency", type=int, default=1, help="addresses queried at the same time")
    ap.add_argument("--timeout", type=float, default=20.0, help="per-request timeout in seconds")
    ap.add_argument("--top", type=int, default=3, help="size of the allocation ranking")
    ap.add_argument("--json-out", default="", help="optional JSON output path")
    ap.add_argument("--no-color", action="store_true", help="disable ANSI colours (also: NO_COLOR env var)")
    return ap


def main(
    argv: Optional[Sequence[str]] = None,
    client_factory: Callable[[CheckerConfig], AllocationQueryClient] = AllocationQueryClient,
    clock: Callable[[], float] = time.time,
) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if args.top < 1:
        ap.error("--top must be >= 1")
    try:
        config = CheckerConfig.from_network(
            args.network,
            endpoint=args.rpc or None,
            contract_address=args.contract or None,
            decimals=args.decimals,
            timeout=args.timeout,
            delay=args.delay,
            concurrency=args.concurrency,
        )
    except ValueError as e:
        ap.error(str(e))
    color = not args.no_color and not os.environ.get("NO_COLOR")

    try:
        return run(
            config,
            args.wallets,
            client_factory=client_factory,
            clock=clock,
            top_n=args.top,
            color=color,
            json_out=args.json_out,
        )
    except Exception as e:
        print(paint(f"❌ Unhandled error: {describe_error(e)}", "red", enabled=color), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
