import socket
import time

import packager
from packager import Vector3
from packager import schema as S

MOVE = S.define_schema("Move", 1, S.struct({
    "player": S.uint(),
    "target": S.vector3(),
}))
ACK = S.define_schema("Ack", 1, S.struct({
    "player": S.uint(),
    "accepted": S.boolean(),
    "reason": S.string(),
}))

# Connect
client = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
client.connect(('localhost', 9999))

for target in (Vector3(12, 3, -8), Vector3(40.5, -20, 100)):
    t0 = time.time()
    sent = packager.write_stream({"player": 7, "target": target}, client, MOVE)
    ack = packager.read_stream(client, ACK)
    print(f"Sent {sent} bytes, ack in {time.time() - t0:.4f}s: {ack}")

client.close()
