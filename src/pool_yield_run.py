from __future__ import annotations

import json
import logging
import os
import sys

from pool_yield_lab import INTEGRATIONS, Pipeline, Settings, get_adapter, summarize_by_chain

logger = logging.getLogger(__name__)


def _selected(argv: list[str]) -> list[str]:
    """Integration names from the command line, or all of them."""

    names = [a for a in argv if not a.endswith(".toml")]
    return names or sorted(INTEGRATIONS)


def main(argv: list[str] | None = None) -> None:
    """Run the selected integrations and print the record batch as JSON.

    Configuration comes from ``POOL_YIELD_CONFIG`` or the first ``.toml``
    argument; remaining arguments name integrations to run.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=os.getenv("POOL_YIELD_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg_file = os.getenv("POOL_YIELD_CONFIG") or next((a for a in args if a.endswith(".toml")), None)
    settings = Settings.load(cfg_file)

    adapters = []
    for name in _selected(args):
        try:
            adapters.append(get_adapter(name))
        except KeyError as exc:
            logger.warning("%s", exc.args[0])
    if not adapters:
        raise SystemExit("no integrations selected")

    repo = Pipeline(adapters, settings).run()
    logger.info("Pools published: %d", len(repo))
    if len(repo):
        print(summarize_by_chain(repo).to_string(), file=sys.stderr)
    print(json.dumps(repo.to_json(), indent=2))


if __name__ == "__main__":
    main()
