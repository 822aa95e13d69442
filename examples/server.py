import socket

import packager
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

# --- SERVER ---
server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
server.bind(('0.0.0.0', 9999))
server.listen(1)

print("Packager game server waiting...")

conn, addr = server.accept()
print(f"Connected by {addr}")

while True:
    try:
        move = packager.read_stream(conn, MOVE)
        if move is None:
            break

        target = move["target"]
        print(f"Player {move['player']} -> ({target.x:.2f}, {target.y:.2f}, {target.z:.2f})")

        accepted = target.y >= 0
        packager.write_stream(
            {"player": move["player"], "accepted": accepted,
             "reason": "" if accepted else "below ground"},
            conn,
            ACK,
        )

    except (packager.PackagerError, EOFError) as e:
        print(e)
        break

conn.close()
