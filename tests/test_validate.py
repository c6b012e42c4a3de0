import unittest

from fakes import make_elf
from ledgerfork.validate import ProgramValidationError, validate_program


class ValidateProgramTests(unittest.TestCase):
    def test_accepts_64_bit_elf(self) -> None:
        validate_program(make_elf(60, elf_class=2))

    def test_accepts_32_bit_elf(self) -> None:
        validate_program(make_elf(52, elf_class=1))

    def test_rejects_short_buffer(self) -> None:
        with self.assertRaisesRegex(ProgramValidationError, "too small"):
            validate_program(make_elf(10))

    def test_rejects_wrong_magic(self) -> None:
        data = b"\x7fELG" + make_elf(60)[4:]
        with self.assertRaisesRegex(ProgramValidationError, "magic"):
            validate_program(data)

    def test_rejects_unknown_class(self) -> None:
        with self.assertRaisesRegex(ProgramValidationError, "class"):
            validate_program(make_elf(60, elf_class=3))


if __name__ == "__main__":
    unittest.main()
