"""MQTT topic helpers.

We keep topic construction in one place so publisher and subscriber agree on
naming.

Topic layout under a configurable namespace (default: `bci`):

- `<ns>/emotions`
    Every reading is published here, whichever producer made it
    (settled slider input or the random generator).

You can run multiple independent simulators on a shared public broker by
changing the `namespace` parameter (e.g. `--namespace demo/alice`).
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "bci"


def emotions_topic(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/emotions"


EMOTIONS_TOPIC = emotions_topic()
