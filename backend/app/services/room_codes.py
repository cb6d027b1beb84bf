import secrets, string

# No 0/O or 1/I: codes get read out loud across the table
ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")
CODE_LENGTH = 6

def generate_room_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def candidate_codes(attempts: int, length: int = CODE_LENGTH):
    """Fresh codes to try in turn; uniqueness is settled by the rooms.code constraint."""
    for _ in range(attempts):
        yield generate_room_code(length)
