from django.test import TestCase

from accounts.services import register_passenger


class RegisterPassengerTests(TestCase):
    def test_passengers_get_sequential_codes(self):
        first = register_passenger("alice", "pass1234", phone_number="07700900000")
        second = register_passenger("bob", "pass1234")

        self.assertEqual(first.role, "passenger")
        self.assertEqual(first.user_code, "CU001")
        self.assertEqual(second.user_code, "CU002")
        self.assertTrue(first.check_password("pass1234"))
