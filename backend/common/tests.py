import math
from decimal import Decimal

from django.test import TestCase

from common import counters
from common.utils import calculate_distance, has_valid_coordinates


class SequentialCounterTests(TestCase):
    def test_first_value_is_one_then_increments(self):
        self.assertEqual(counters.next_value("bookingId_OP001"), 1)
        self.assertEqual(counters.next_value("bookingId_OP001"), 2)
        self.assertEqual(counters.next_value("bookingId_OP001"), 3)

    def test_namespaces_are_independent(self):
        counters.next_value("driverId_OP001")
        counters.next_value("driverId_OP001")

        self.assertEqual(counters.next_value("driverId_OP002"), 1)

    def test_formatted_codes(self):
        self.assertEqual(counters.format_operator_code(1), "OP001")
        self.assertEqual(counters.format_driver_code("OP001", 7), "OP001/DR0007")
        self.assertEqual(counters.format_passenger_code(12), "CU012")
        self.assertEqual(counters.format_booking_code("OP001", 42), "OP001/00000042")

    def test_code_helpers_use_their_own_counters(self):
        self.assertEqual(counters.next_operator_code(), "OP001")
        self.assertEqual(counters.next_operator_code(), "OP002")
        self.assertEqual(counters.next_driver_code("OP002"), "OP002/DR0001")
        self.assertEqual(counters.next_booking_code("OP002"), "OP002/00000001")
        self.assertEqual(counters.next_passenger_code(), "CU001")


class GeoTests(TestCase):
    def test_distance_to_self_is_zero(self):
        self.assertEqual(calculate_distance(53.645, -1.783, 53.645, -1.783), 0)

    def test_distance_is_symmetric(self):
        there = calculate_distance(53.6480, -1.7800, 53.6450, -1.7830)
        back = calculate_distance(53.6450, -1.7830, 53.6480, -1.7800)

        self.assertAlmostEqual(there, back, places=6)
        self.assertAlmostEqual(there, 388, delta=5)

    def test_accepts_decimals(self):
        self.assertAlmostEqual(
            calculate_distance(Decimal("53.648000"), Decimal("-1.780000"), 53.645, -1.783),
            calculate_distance(53.648, -1.78, 53.645, -1.783),
        )

    def test_antipodes_do_not_blow_up(self):
        self.assertAlmostEqual(calculate_distance(0, 0, 0, 180), math.pi * 6371000, delta=1)

    def test_valid_coordinates(self):
        self.assertTrue(has_valid_coordinates(53.645, -1.783))
        self.assertTrue(has_valid_coordinates(Decimal("53.645000"), Decimal("-1.783000")))
        self.assertTrue(has_valid_coordinates(-90, 180))

    def test_invalid_coordinates(self):
        self.assertFalse(has_valid_coordinates(None, -1.783))
        self.assertFalse(has_valid_coordinates("53.6", "-1.7"))
        self.assertFalse(has_valid_coordinates(True, 1))
        self.assertFalse(has_valid_coordinates(float("nan"), 0))
        self.assertFalse(has_valid_coordinates(0, float("inf")))
        self.assertFalse(has_valid_coordinates(91, 0))
        self.assertFalse(has_valid_coordinates(0, -181))
