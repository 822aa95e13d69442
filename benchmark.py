import argparse
import json
import pickle
import time

import numpy as np
import packager
from packager import Vector3
from packager import schema as S

# Optional dependencies for comparison
try:
    import msgpack
except ImportError:
    msgpack = None
    print("Warning: msgpack not installed. msgpack comparison skipped.")

ENTITY = S.struct({
    "id": S.uint(),
    "name": S.string(),
    "hp": S.float32(),
    "alive": S.boolean(),
    "pos": S.vector3(),
})
WORLD = S.define_schema("World", 1, S.array(ENTITY))


def make_world(n, seed=0):
    rng = np.random.default_rng(seed)
    return [
        {
            "id": i,
            "name": f"npc_{i}",
            "hp": float(rng.integers(0, 100)) + 0.5,
            "alive": bool(rng.integers(0, 2)),
            "pos": Vector3(*(float(c) for c in rng.uniform(-200, 200, 3))),
        }
        for i in range(n)
    ]


def plain(world):
    """Same data with vectors as lists, for formats without a vector type."""
    return [{**e, "pos": list(e["pos"])} for e in world]


def bench(name, enc, dec, data, rounds):
    t0 = time.perf_counter()
    for _ in range(rounds):
        blob = enc(data)
    t_enc = (time.perf_counter() - t0) * 1000 / rounds
    t0 = time.perf_counter()
    for _ in range(rounds):
        dec(blob)
    t_dec = (time.perf_counter() - t0) * 1000 / rounds
    print(f"{name:<18} | {len(blob):>10,} | {t_enc:>10.2f} | {t_dec:>10.2f}")


def main():
    parser = argparse.ArgumentParser(description="Packager size/speed comparison")
    parser.add_argument("--entities", type=int, default=2000)
    parser.add_argument("--rounds", type=int, default=20)
    args = parser.parse_args()

    world = make_world(args.entities)
    flat = plain(world)

    print(f"{'FORMAT':<18} | {'BYTES':>10} | {'ENC (ms)':>10} | {'DEC (ms)':>10}")
    print("-" * 58)
    bench("packager schema", lambda x: packager.pack(x, WORLD),
          lambda b: packager.unpack(b, WORLD), world, args.rounds)
    bench("packager auto", packager.pack, packager.unpack, world, args.rounds)
    bench("json", lambda x: json.dumps(x).encode("utf-8"), json.loads, flat, args.rounds)
    bench("pickle", lambda x: pickle.dumps(x, protocol=pickle.HIGHEST_PROTOCOL),
          pickle.loads, flat, args.rounds)
    if msgpack is not None:
        bench("msgpack", msgpack.packb, msgpack.unpackb, flat, args.rounds)


if __name__ == "__main__":
    main()
