import re
import unittest

from pixelock.services import secrets_service


class TestSecrets(unittest.TestCase):
    def test_token_length_and_alphabet(self) -> None:
        for length in (1, 16, 22, 40):
            token = secrets_service.generate_token(length)
            self.assertEqual(len(token), length)
            self.assertRegex(token, r"^[A-Za-z0-9_-]+$")

    def test_token_rejects_non_positive_length(self) -> None:
        with self.assertRaises(ValueError):
            secrets_service.generate_token(0)

    def test_tokens_do_not_collide(self) -> None:
        tokens = {secrets_service.generate_token(22) for _ in range(10_000)}
        self.assertEqual(len(tokens), 10_000)

    def test_pin_is_four_digits(self) -> None:
        for _ in range(500):
            pin = secrets_service.generate_pin()
            self.assertTrue(re.fullmatch(r"\d{4}", pin), pin)

    def test_hash_is_deterministic_and_hides_pin(self) -> None:
        digest = secrets_service.hash_pin("0427")
        self.assertEqual(digest, secrets_service.hash_pin("0427"))
        self.assertEqual(len(digest), 64)
        self.assertNotIn("0427", digest)

    def test_hash_separates_whole_pin_space(self) -> None:
        digest = secrets_service.hash_pin("0427")
        matches = [f"{n:04d}" for n in range(10_000) if secrets_service.hash_pin(f"{n:04d}") == digest]
        self.assertEqual(matches, ["0427"])

    def test_pepper_changes_digest(self) -> None:
        plain = secrets_service.hash_pin("1234")
        peppered = secrets_service.hash_pin("1234", pepper="s3cret")
        self.assertNotEqual(plain, peppered)
        self.assertEqual(peppered, secrets_service.hash_pin("1234", pepper="s3cret"))

    def test_pins_match(self) -> None:
        digest = secrets_service.hash_pin("9999", pepper="p")
        self.assertTrue(secrets_service.pins_match("9999", digest, pepper="p"))
        self.assertFalse(secrets_service.pins_match("9998", digest, pepper="p"))
        self.assertFalse(secrets_service.pins_match("9999", digest))


if __name__ == "__main__":
    unittest.main()
