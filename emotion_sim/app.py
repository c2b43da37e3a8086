from __future__ import annotations

# Single-entrypoint runner.
#
# CLEAN CLI:
# - Primary way to run the project is the single command:
#     python -m emotion_sim.app run [--interval SECONDS]
#
# `publish` and `subscribe` start one side only, e.g. to run publisher and
# subscriber on different machines against the same broker.

import argparse

from .blackboard import DEFAULT_CLIENT_ID
from .generator import DEFAULT_INTERVAL
from .mqtt_client import DEFAULT_BROKER_HOST, DEFAULT_BROKER_PORT
from .mqtt_topics import DEFAULT_NAMESPACE
from .players import MAX_PLAYERS


def main() -> None:
    parser = argparse.ArgumentParser(description="BCI Emotion Simulator (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_common_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--mqtt-host", default=DEFAULT_BROKER_HOST)
        p.add_argument("--mqtt-port", type=int, default=DEFAULT_BROKER_PORT)
        p.add_argument("--namespace", default=DEFAULT_NAMESPACE)
        p.add_argument("-v", "--verbose", action="store_true")

    def add_generator_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="seconds between readings")
        p.add_argument("--max-readings", type=int, default=None)
        p.add_argument("--seed", type=int, default=None)

    # ---- Normal operation: one command ----
    p_run = sub.add_parser("run", help="Start generator + publisher + subscriber in one process")
    add_common_args(p_run)
    add_generator_args(p_run)

    # ---- One side only ----
    p_pub = sub.add_parser("publish", help="Publish random readings (or one settled reading with --send)")
    add_common_args(p_pub)
    add_generator_args(p_pub)
    p_pub.add_argument("--client-id", default=DEFAULT_CLIENT_ID)
    p_pub.add_argument("--send", type=float, nargs=3, metavar=("FOCUS", "CALM", "STRESS"), default=None)

    p_sub = sub.add_parser("subscribe", help="Log the dominant emotion of every received reading")
    add_common_args(p_sub)
    p_sub.add_argument("--keys", choices=("emotions", "inputs"), default="emotions")
    p_sub.add_argument("--local-client-id", default=None)
    p_sub.add_argument("--max-players", type=int, default=MAX_PLAYERS)

    args = parser.parse_args()

    run_args = [
        "--mqtt-host",
        args.mqtt_host,
        "--mqtt-port",
        str(args.mqtt_port),
        "--namespace",
        args.namespace,
    ]
    if args.verbose:
        run_args += ["--verbose"]

    if args.cmd in ("run", "publish"):
        run_args += ["--interval", str(args.interval)]
        if args.max_readings is not None:
            run_args += ["--max-readings", str(args.max_readings)]
        if args.seed is not None:
            run_args += ["--seed", str(args.seed)]

    if args.cmd == "run":
        from .run_all import main as run

        _dispatch_to_module_main(run, run_args)
        return

    if args.cmd == "publish":
        from .publisher import main as run

        run_args += ["--client-id", args.client_id]
        if args.send is not None:
            run_args += ["--send", *(str(v) for v in args.send)]
        _dispatch_to_module_main(run, run_args)
        return

    if args.cmd == "subscribe":
        from .subscriber import main as run

        run_args += ["--keys", args.keys, "--max-players", str(args.max_players)]
        if args.local_client_id is not None:
            run_args += ["--local-client-id", args.local_client_id]
        _dispatch_to_module_main(run, run_args)
        return


def _dispatch_to_module_main(module_main, argv: list[str]) -> None:
    import sys

    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
