import argparse
import logging

from common.config import SessionConfig
from session.driver import sign_via_distributed_dealer, sign_via_trusted_dealer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Threshold Schnorr signing with a trusted or distributed dealer")
    parser.add_argument("--max-signers", type=int, default=5)
    parser.add_argument("--min-signers", type=int, default=3)
    parser.add_argument("--message", default="random message")
    parser.add_argument("--mode", choices=["trusted", "distributed", "both"], default="both")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    message = args.message.encode()

    if args.mode in ("trusted", "both"):
        signature = sign_via_trusted_dealer(message, args.max_signers, args.min_signers)
        print(f"[Trusted dealer] signature is {signature.to_bytes().hex()}")

    if args.mode in ("distributed", "both"):
        signature = sign_via_distributed_dealer(
            message, args.max_signers, args.min_signers, config=SessionConfig.from_env()
        )
        print(f"[Distributed dealer] signature is {signature.to_bytes().hex()}")


if __name__ == "__main__":
    main()
