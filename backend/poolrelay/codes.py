import random
import secrets

# A-Z and 2-9 without the glyphs that read alike (0/O, 1/I)
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 6


def generate_room_code(length=ROOM_CODE_LENGTH):
    """Generate a short, shareable room code.

    Uniqueness is the registry's job; callers retry on collision.
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_player_id():
    """Opaque correlation token for poll-transport players (128 random bits)."""
    return secrets.token_hex(16)
