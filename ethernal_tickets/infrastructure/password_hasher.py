import bcrypt


# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


class BcryptPasswordHasher:

    def hash_password(self, plain_password: str) -> str:
        password_bytes = plain_password.encode("utf-8")
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        password_bytes = plain_password.encode("utf-8")
        if len(password_bytes) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
