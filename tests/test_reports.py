"""
Tests for report building: join, filters, ordering, names
"""
from datetime import date

from busfees.models import Payment, PaymentStatus, Station, Student
from busfees.reports import build_report, build_station_report, report_filename, report_title

DAY = date(2024, 1, 10)
NEXT_DAY = date(2024, 1, 11)

STATIONS = [Station(id="w", name="West"), Station(id="e", name="East")]
STUDENTS = [
    Student(id="w-bob", full_name="Bob", station_id="w"),
    Student(id="w-amy", full_name="Amy", station_id="w"),
    Student(id="e-bob", full_name="Bob", station_id="e"),
    Student(id="e-amy", full_name="Amy", station_id="e"),
]


def _pay(pid, student_id, day=DAY, status=PaymentStatus.Paid):
    return Payment(id=pid, student_id=student_id, date=day, status=status, recorded_by="u", recorded_at="t")


class TestBuildReport:
    """Test the admin-wide report"""

    def test_sorted_by_station_then_student(self):
        payments = [_pay("1", "w-bob"), _pay("2", "w-amy"), _pay("3", "e-bob"), _pay("4", "e-amy")]

        rows = build_report(payments, STUDENTS, STATIONS, DAY)

        assert [(r.station_name, r.student_name) for r in rows] == [
            ("East", "Amy"),
            ("East", "Bob"),
            ("West", "Amy"),
            ("West", "Bob"),
        ]

    def test_sort_ignores_case(self):
        stations = [Station(id="a", name="beta"), Station(id="b", name="Alpha")]
        students = [Student(id="x", full_name="zed", station_id="a"), Student(id="y", full_name="Yan", station_id="b")]

        rows = build_report([_pay("1", "x"), _pay("2", "y")], students, stations)

        assert [r.station_name for r in rows] == ["Alpha", "beta"]

    def test_sort_keeps_non_ascii_letters(self):
        names = ["Mampong", "Łódź", "Ωmega", "Accra"]
        stations = [Station(id=str(i), name=n) for i, n in enumerate(names)]
        students = [Student(id=f"s{i}", full_name="Kofi", station_id=str(i)) for i in range(len(names))]
        payments = [_pay(str(i), f"s{i}") for i in range(len(names))]

        rows = build_report(payments, students, stations, DAY)

        assert [r.station_name for r in rows] == ["Accra", "Łódź", "Mampong", "Ωmega"]

    def test_accented_student_names_sort_with_their_base_letter(self):
        students = [
            Student(id="z", full_name="Zoë", station_id="w"),
            Student(id="v", full_name="Eva", station_id="w"),
            Student(id="e", full_name="Émile", station_id="w"),
        ]

        rows = build_station_report([_pay("1", "z"), _pay("2", "v"), _pay("3", "e")], students, STATIONS[0], DAY)

        assert [r.student_name for r in rows] == ["Émile", "Eva", "Zoë"]

    def test_maps_status_and_amount(self):
        payments = [_pay("1", "w-bob"), _pay("2", "w-amy", status=PaymentStatus.NotPaid)]

        rows = build_report(payments, STUDENTS, STATIONS, DAY)

        by_name = {r.student_name: r for r in rows}
        assert (by_name["Bob"].status, by_name["Bob"].amount) == ("Paid", 5.0)
        assert (by_name["Amy"].status, by_name["Amy"].amount) == ("Not Paid", 0.0)

    def test_unit_fee_is_configurable(self):
        rows = build_report([_pay("1", "w-bob")], STUDENTS, STATIONS, unit_fee=2.5)

        assert rows[0].amount == 2.5

    def test_orphans_are_dropped(self):
        students = STUDENTS + [Student(id="lost", full_name="Lost", station_id="gone")]
        payments = [_pay("1", "w-bob"), _pay("2", "deleted-student"), _pay("3", "lost")]

        rows = build_report(payments, students, STATIONS, DAY)

        assert [r.student_name for r in rows] == ["Bob"]

    def test_row_count_matches_resolvable_payments_on_date(self):
        payments = [_pay("1", "w-bob"), _pay("2", "e-amy"), _pay("3", "ghost"), _pay("4", "w-amy", day=NEXT_DAY)]

        rows = build_report(payments, STUDENTS, STATIONS, DAY)

        assert len(rows) == 2

    def test_no_date_filter_keeps_every_date(self):
        payments = [_pay("1", "w-bob"), _pay("2", "w-bob", day=NEXT_DAY)]

        assert len(build_report(payments, STUDENTS, STATIONS, None)) == 2

    def test_station_filter(self):
        payments = [_pay("1", "w-bob"), _pay("2", "e-bob")]

        rows = build_report(payments, STUDENTS, STATIONS, DAY, station_filter="e")

        assert [(r.station_name, r.student_name) for r in rows] == [("East", "Bob")]

    def test_missing_record_is_not_backfilled(self):
        """Dashboard counts absence as unpaid; the report shows nothing"""
        payments = [_pay("1", "w-bob", day=DAY)]

        rows = build_report(payments, STUDENTS, STATIONS, NEXT_DAY, station_filter="w")

        assert rows == []

    def test_cells_use_two_decimals(self):
        rows = build_report([_pay("1", "w-bob")], STUDENTS, STATIONS, DAY)

        assert rows[0].cells() == ["Bob", "West", "2024-01-10", "Paid", "5.00"]


class TestStationReport:
    """Test the single-station teacher report"""

    def test_only_own_station_sorted_by_student(self):
        payments = [_pay("1", "w-bob"), _pay("2", "e-amy"), _pay("3", "w-amy")]

        rows = build_station_report(payments, STUDENTS, STATIONS[0], DAY)

        assert [r.student_name for r in rows] == ["Amy", "Bob"]
        assert {r.station_name for r in rows} == {"West"}

    def test_no_station_gives_no_rows(self):
        assert build_station_report([_pay("1", "w-bob")], STUDENTS, None, DAY) == []


class TestNaming:
    """Test export titles and filenames"""

    def test_title(self):
        assert report_title(DAY) == "Payment Report for 2024-01-10"
        assert report_title(None) == "Payment Report for all dates"

    def test_filenames(self):
        assert report_filename(DAY) == "payment_report_2024-01-10"
        assert report_filename(DAY, Station(id="s", name="North Gate")) == "payment_report_North_Gate_2024-01-10"
        assert report_filename(None) == "payment_report_all_dates"
