import uuid

ACCESS_CODE_LENGTH = 8


def generate_voter_code(is_taken=None, attempts=10):
    """Private ballot access code, redrawn while ``is_taken(code)`` reports a clash."""
    for _ in range(attempts):
        code = uuid.uuid4().hex[:ACCESS_CODE_LENGTH].upper()
        if is_taken is None or not is_taken(code):
            return code
    raise RuntimeError("Could not allocate a unique voter access code.")
