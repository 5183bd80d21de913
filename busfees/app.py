from __future__ import annotations

import ctypes
import sys
from datetime import date
from pathlib import Path
from tkinter import messagebox, ttk
from typing import Any, Callable

import customtkinter as ctk

from .constants import ALL_STATIONS, APP_NAME
from .errors import IdentityError, StoreError, ValidationError
from .exporters import export_to_document, export_to_spreadsheet
from .identity import provider_for
from .ledger import admin_overview, payment_status_for, students_of, teacher_overview
from .logger import ActivityLog, ErrorLogger
from .models import PaymentStatus, Role, StationUpdate, StudentUpdate, UserUpdate, parse_day
from .navigation import Navigator, root_view
from .reports import build_report, build_station_report, report_filename, report_title
from .session import AppState, SessionManager
from .settings_store import SettingsStore
from .storage import open_store

UNASSIGNED = "Unassigned"
ALL_STATIONS_LABEL = "All Stations"


def _enable_high_dpi() -> None:
    """Best-effort: make the app crisp on Windows high-DPI displays."""

    if not sys.platform.startswith("win"):
        return
    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        try:
            ctypes.windll.user32.SetProcessDPIAware()  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            pass


def _parse_date_entry(text: str) -> date | None:
    """Blank means "all dates"."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        return parse_day(text)
    except ValueError:
        raise ValidationError("Dates must look like YYYY-MM-DD.", "date")


class BusFeesApp(ctk.CTk):
    """Desktop front end.

    The window swaps between a login screen and a role-specific shell
    (sidebar + page). Pages are rebuilt from the current snapshot every time
    they are shown.
    """

    def __init__(self):
        super().__init__()

        self.err_logger = ErrorLogger()
        self.settings_store = SettingsStore()
        self.settings = self.settings_store.load()
        self.activity = ActivityLog(err_logger=self.err_logger)

        ctk.set_default_color_theme("blue")
        self._apply_ui_settings()

        self.title(APP_NAME)
        self.geometry("1180x720")
        self.minsize(980, 640)

        self.navigator: Navigator | None = None
        self._root_frame: ctk.CTkFrame | None = None
        self._nav_buttons: dict[str, ctk.CTkButton] = {}

        self._configure_ttk()
        self._open_data()
        self.show_root()

    def _open_data(self) -> None:
        # Not "state": CTk inherits Wm.state() and calls it itself.
        self.store = open_store(self.settings)
        self.app_state = AppState(self.store, self.settings, self.err_logger, self.activity)
        self.sessions = SessionManager(
            provider_for(
                self.settings.backend,
                self.store,
                self.settings.login_max_attempts,
                self.settings.login_window_seconds,
            ),
            self.err_logger,
            self.activity,
        )
        self.app_state.load()
        self.sessions.restore()

    # Tkinter callback errors can be silent; log them.
    def report_callback_exception(self, exc, val, tb):  # type: ignore[override]
        try:
            self.err_logger.log_exception(val, f"tk_callback: {exc}")
        finally:
            super().report_callback_exception(exc, val, tb)

    # ---------------- Look & Feel ----------------
    def _apply_ui_settings(self) -> None:
        mode = (self.settings.appearance_mode or "System").strip().capitalize()
        if mode not in {"Light", "Dark", "System"}:
            mode = "System"
        ctk.set_appearance_mode(mode)
        # Same value for window+widget scaling avoids fractional blur.
        ctk.set_window_scaling(self.settings.ui_scaling)
        ctk.set_widget_scaling(self.settings.ui_scaling)

    def _configure_ttk(self) -> None:
        style = ttk.Style()
        style.theme_use("clam")
        style.configure("Treeview", rowheight=28, borderwidth=0, relief="flat")
        style.configure("Treeview.Heading", font=("Segoe UI", 10, "bold"), padding=(8, 6))

    def _card(self, parent: ctk.CTkFrame, **kwargs: Any) -> ctk.CTkFrame:
        return ctk.CTkFrame(parent, corner_radius=14, border_width=1, border_color=("#e5e7eb", "#1f2937"), **kwargs)

    def _page_title(self, parent: ctk.CTkFrame, title: str, subtitle: str) -> ctk.CTkFrame:
        bar = ctk.CTkFrame(parent, corner_radius=0)
        bar.grid_columnconfigure(0, weight=1)
        ctk.CTkLabel(bar, text=title, font=ctk.CTkFont(size=22, weight="bold")).grid(
            row=0, column=0, sticky="w", padx=18, pady=(18, 2)
        )
        ctk.CTkLabel(bar, text=subtitle, font=ctk.CTkFont(size=12), text_color=("#6b7280", "#94a3b8")).grid(
            row=1, column=0, sticky="w", padx=18, pady=(0, 12)
        )
        return bar

    def _stat_card(self, parent: ctk.CTkFrame, column: int, title: str, value: str) -> None:
        card = self._card(parent)
        card.grid(row=0, column=column, sticky="nsew", padx=8, pady=(0, 12))
        ctk.CTkLabel(card, text=title, text_color=("#6b7280", "#94a3b8")).grid(row=0, column=0, sticky="w", padx=16, pady=(14, 2))
        ctk.CTkLabel(card, text=value, font=ctk.CTkFont(size=24, weight="bold")).grid(row=1, column=0, sticky="w", padx=16, pady=(0, 14))

    def _make_tree(self, parent: ctk.CTkFrame, columns: list[tuple[str, str, int]]) -> ttk.Treeview:
        wrap = ctk.CTkFrame(parent, corner_radius=0)
        wrap.grid_columnconfigure(0, weight=1)
        wrap.grid_rowconfigure(0, weight=1)
        tree = ttk.Treeview(wrap, columns=[c[0] for c in columns], show="headings", selectmode="browse")
        for key, heading, width in columns:
            tree.heading(key, text=heading)
            tree.column(key, width=width, anchor="w")
        vsb = ttk.Scrollbar(wrap, orient="vertical", command=tree.yview)
        tree.configure(yscrollcommand=vsb.set)
        tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")
        wrap.grid(row=2, column=0, sticky="nsew", padx=18, pady=(0, 18))
        return tree

    def _page(self) -> ctk.CTkFrame:
        page = ctk.CTkFrame(self.content, corner_radius=0)
        page.grid(row=0, column=0, sticky="nsew")
        page.grid_columnconfigure(0, weight=1)
        page.grid_rowconfigure(2, weight=1)
        return page

    def _toolbar(self, page: ctk.CTkFrame) -> ctk.CTkFrame:
        bar = self._card(page)
        bar.grid(row=1, column=0, sticky="ew", padx=18, pady=(0, 12))
        return bar

    @staticmethod
    def _selected_id(tree: ttk.Treeview) -> str | None:
        sel = tree.selection()
        return sel[0] if sel else None

    def _guard(self, context: str, fn: Callable[[], Any]) -> Any:
        """Run a UI action, turning validation errors into a message box."""
        try:
            return fn()
        except ValidationError as e:
            messagebox.showwarning(APP_NAME, e.message, parent=self)
        except StoreError as e:
            self.err_logger.log_exception(e, context)
            messagebox.showerror(APP_NAME, "The change could not be saved.", parent=self)
        except OSError as e:
            self.err_logger.log_exception(e, context)
            messagebox.showerror(APP_NAME, f"Could not write the file: {e}", parent=self)
        return None

    # ---------------- Root / login ----------------
    def show_root(self) -> None:
        if self._root_frame is not None:
            self._root_frame.destroy()
        self._nav_buttons = {}
        view = root_view(self.sessions.current)
        if view == "login":
            self.navigator = None
            self._root_frame = self._build_login()
        else:
            self.navigator = Navigator(self.sessions.current.user.role)
            self._root_frame = self._build_shell()
            self.show_page(self.navigator.current)

    def _build_login(self) -> ctk.CTkFrame:
        frame = ctk.CTkFrame(self, corner_radius=0)
        frame.pack(fill="both", expand=True)
        card = self._card(frame)
        card.place(relx=0.5, rely=0.5, anchor="center")
        card.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(card, text=self.settings.school_name, font=ctk.CTkFont(size=20, weight="bold")).grid(
            row=0, column=0, padx=28, pady=(24, 2)
        )
        ctk.CTkLabel(card, text="Bus fee collection", text_color=("#6b7280", "#94a3b8")).grid(row=1, column=0, padx=28, pady=(0, 16))

        email = ctk.CTkEntry(card, width=300, placeholder_text="Enter your email")
        email.grid(row=2, column=0, padx=28, pady=6)
        password = ctk.CTkEntry(card, width=300, placeholder_text="Enter your password", show="*")
        if self.settings.backend == "remote":
            password.grid(row=3, column=0, padx=28, pady=6)
        error = ctk.CTkLabel(card, text="", text_color="#dc2626", wraplength=300)
        error.grid(row=4, column=0, padx=28, pady=(6, 0))

        def submit(_event=None):
            error.configure(text="")
            try:
                session = self.sessions.login(email.get(), password.get())
            except IdentityError as e:
                self.err_logger.log_exception(e, "login")
                error.configure(text=e.user_message)
                return
            except StoreError as e:
                self.err_logger.log_exception(e, "login")
                error.configure(text="Failed to login. Please try again.")
                return
            if session is None:
                error.configure(text="Invalid email or password. Please try again.")
                return
            self.show_root()

        ctk.CTkButton(card, text="Sign in", width=300, command=submit).grid(row=5, column=0, padx=28, pady=(12, 24))
        email.bind("<Return>", submit)
        password.bind("<Return>", submit)
        return frame

    def logout(self) -> None:
        self.sessions.logout()
        self.show_root()

    # ---------------- Shell / navigation ----------------
    def _build_shell(self) -> ctk.CTkFrame:
        shell = ctk.CTkFrame(self, corner_radius=0)
        shell.pack(fill="both", expand=True)
        shell.grid_columnconfigure(1, weight=1)
        shell.grid_rowconfigure(0, weight=1)

        sidebar = ctk.CTkFrame(shell, corner_radius=0)
        sidebar.grid(row=0, column=0, sticky="nsw")
        sidebar.grid_rowconfigure(10, weight=1)
        ctk.CTkLabel(sidebar, text="Bus Fees", font=ctk.CTkFont(size=18, weight="bold")).grid(
            row=0, column=0, sticky="w", padx=14, pady=(18, 10)
        )

        for row, item in enumerate(self.navigator.pages, start=1):
            btn = ctk.CTkButton(
                sidebar,
                text=item.label,
                anchor="w",
                height=40,
                corner_radius=10,
                fg_color="transparent",
                hover_color=("#e5e7eb", "#1f2937"),
                command=lambda k=item.key: self.show_page(k),
            )
            btn.grid(row=row, column=0, sticky="ew", padx=14, pady=6)
            self._nav_buttons[item.key] = btn

        user = self.sessions.current.user
        ctk.CTkLabel(sidebar, text=f"{user.name}\n{user.role.label}", justify="left", font=ctk.CTkFont(size=11)).grid(
            row=11, column=0, sticky="sw", padx=14, pady=(10, 4)
        )
        ctk.CTkButton(sidebar, text="Logout", fg_color="#b91c1c", hover_color="#991b1b", command=self.logout).grid(
            row=12, column=0, sticky="ew", padx=14, pady=(4, 14)
        )

        self.content = ctk.CTkFrame(shell, corner_radius=0)
        self.content.grid(row=0, column=1, sticky="nsew")
        self.content.grid_columnconfigure(0, weight=1)
        self.content.grid_rowconfigure(0, weight=1)
        return shell

    def show_page(self, key: str) -> None:
        key = self.navigator.navigate(key)
        for k, btn in self._nav_buttons.items():
            if k == key:
                btn.configure(fg_color=("#dbeafe", "#0b3b70"), text_color=("#111827", "#ffffff"))
            else:
                btn.configure(fg_color="transparent", text_color=("#111827", "#ffffff"))
        for child in self.content.winfo_children():
            child.destroy()

        user = self.sessions.current.user
        builders = {
            "dashboard": self._admin_dashboard if user.is_admin else self._teacher_dashboard,
            "stations": self._stations_page,
            "teachers": self._teachers_page,
            "students": self._students_page,
            "payments": self._payments_page,
            "reports": self._admin_reports if user.is_admin else self._teacher_reports,
        }
        try:
            builders[key]()
        except StoreError as e:
            self.err_logger.log_exception(e, f"show_page {key}")

    def refresh(self) -> None:
        self.show_page(self.navigator.current)

    # ---------------- Dialogs ----------------
    def _form_dialog(
        self,
        title: str,
        fields: list[tuple[str, str]],
        choices: dict[str, list[str]] | None = None,
        initial: dict[str, str] | None = None,
    ) -> dict[str, str] | None:
        choices = choices or {}
        initial = initial or {}
        dlg = ctk.CTkToplevel(self)
        dlg.title(title)
        dlg.geometry("460x320")
        dlg.transient(self)
        dlg.grab_set()
        dlg.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(dlg, text=title, font=ctk.CTkFont(size=18, weight="bold")).grid(
            row=0, column=0, columnspan=2, sticky="w", padx=16, pady=(16, 10)
        )
        widgets: dict[str, Any] = {}
        for r, (key, label) in enumerate(fields, start=1):
            ctk.CTkLabel(dlg, text=label).grid(row=r, column=0, padx=16, pady=8, sticky="w")
            if key in choices:
                w = ctk.CTkOptionMenu(dlg, values=choices[key])
                w.set(initial.get(key) or choices[key][0])
            else:
                w = ctk.CTkEntry(dlg)
                w.insert(0, initial.get(key, ""))
            w.grid(row=r, column=1, padx=16, pady=8, sticky="ew")
            widgets[key] = w

        result: dict[str, str] = {}

        def on_save():
            for k, w in widgets.items():
                result[k] = w.get().strip()
            dlg.destroy()

        actions = ctk.CTkFrame(dlg, corner_radius=0)
        actions.grid(row=len(fields) + 1, column=0, columnspan=2, sticky="ew", padx=16, pady=16)
        actions.grid_columnconfigure((0, 1), weight=1)
        ctk.CTkButton(actions, text="Cancel", fg_color="#6b7280", command=dlg.destroy).grid(row=0, column=0, padx=6, sticky="ew")
        ctk.CTkButton(actions, text="Save", command=on_save).grid(row=0, column=1, padx=6, sticky="ew")

        self.wait_window(dlg)
        return result if result else None

    def _station_names(self) -> list[str]:
        return [s.name for s in self.app_state.stations]

    def _station_id_by_name(self, name: str) -> str | None:
        return next((s.id for s in self.app_state.stations if s.name == name), None)

    def _station_name(self, station_id: str | None) -> str:
        st = self.app_state.station(station_id)
        return st.name if st else "N/A"

    # ---------------- Admin pages ----------------
    def _admin_dashboard(self) -> None:
        page = self._page()
        self._page_title(page, "Admin Dashboard", f"Today, {date.today().isoformat()}").grid(row=0, column=0, sticky="ew")
        ov = admin_overview(self.app_state.stations, self.app_state.students, self.app_state.payments, date.today(), self.settings.unit_fee)

        cards = ctk.CTkFrame(page, corner_radius=0)
        cards.grid(row=1, column=0, sticky="ew", padx=10)
        cards.grid_columnconfigure((0, 1, 2), weight=1)
        self._stat_card(cards, 0, "Total Bus Stations", str(ov.total_stations))
        self._stat_card(cards, 1, "Total Students", str(ov.total_students))
        self._stat_card(cards, 2, "Payments Received Today", self.settings.money(ov.collected_today))

        tree = self._make_tree(page, [("station", "Station Name", 260), ("paid", "Students Paid", 160), ("total", "Total Collection", 160)])
        for s in ov.stations:
            tree.insert("", "end", iid=s.station.id, values=(s.station.name, f"{s.paid_count} / {s.total_students}", self.settings.money(s.total_collection)))

    def _stations_page(self) -> None:
        page = self._page()
        self._page_title(page, "Manage Bus Stations", "Stations and the teacher in charge").grid(row=0, column=0, sticky="ew")
        bar = self._toolbar(page)
        tree = self._make_tree(page, [("name", "Station Name", 280), ("teacher", "Teacher In-Charge", 280)])
        for st in self.app_state.stations:
            teacher = self.app_state.teacher_for_station(st.id)
            tree.insert("", "end", iid=st.id, values=(st.name, teacher.name if teacher else "Unassigned"))

        def add():
            res = self._form_dialog("Add Station", [("name", "Station Name")])
            if res and self._guard("add_station", lambda: self.app_state.add_station(res["name"])):
                self.refresh()

        def edit():
            sid = self._selected_id(tree)
            st = self.app_state.station(sid)
            if st is None:
                return
            res = self._form_dialog("Edit Station", [("name", "Station Name")], initial={"name": st.name})
            if res and self._guard("update_station", lambda: self.app_state.update_station(st.id, StationUpdate(name=res["name"]))):
                self.refresh()

        def delete():
            sid = self._selected_id(tree)
            if sid is None:
                return
            if not messagebox.askyesno(APP_NAME, "Are you sure? This will delete related students and unassign teachers.", parent=self):
                return
            if not self.app_state.delete_station(sid):
                messagebox.showwarning(APP_NAME, "Some related records could not be updated. The list shows what was saved.", parent=self)
            self.refresh()

        ctk.CTkButton(bar, text="Add Station", command=add).grid(row=0, column=0, padx=(12, 6), pady=12)
        ctk.CTkButton(bar, text="Edit Selected", command=edit).grid(row=0, column=1, padx=6, pady=12)
        ctk.CTkButton(bar, text="Delete Selected", fg_color="#b91c1c", hover_color="#991b1b", command=delete).grid(row=0, column=2, padx=6, pady=12)

    def _teachers_page(self) -> None:
        page = self._page()
        self._page_title(page, "Manage Teachers", "Teacher accounts and station assignments").grid(row=0, column=0, sticky="ew")
        bar = self._toolbar(page)
        tree = self._make_tree(page, [("name", "Name", 220), ("email", "Email", 260), ("station", "Assigned Station", 220)])
        for t in self.app_state.teachers:
            tree.insert("", "end", iid=t.id, values=(t.name, t.email, self._station_name(t.station_id) if t.station_id else UNASSIGNED))

        fields = [("name", "Full Name"), ("email", "Email"), ("station", "Assign to Station")]

        def choices():
            return {"station": [UNASSIGNED] + self._station_names()}

        def add():
            res = self._form_dialog("Add Teacher", fields, choices())
            if not res:
                return
            station_id = self._station_id_by_name(res["station"])
            if self._guard("add_user", lambda: self.app_state.add_user(res["name"], res["email"], Role.Teacher, station_id)):
                self.refresh()

        def edit():
            t = next((u for u in self.app_state.teachers if u.id == self._selected_id(tree)), None)
            if t is None:
                return
            initial = {"name": t.name, "email": t.email, "station": self._station_name(t.station_id) if t.station_id else UNASSIGNED}
            res = self._form_dialog("Edit Teacher", fields, choices(), initial)
            if not res:
                return
            station_id = self._station_id_by_name(res["station"])
            update = UserUpdate(name=res["name"], email=res["email"], role=Role.Teacher, station_id=station_id, clear_station=station_id is None)
            if self._guard("update_user", lambda: self.app_state.update_user(t.id, update)):
                self.refresh()

        def delete():
            uid = self._selected_id(tree)
            if uid and messagebox.askyesno(APP_NAME, "Are you sure?", parent=self):
                self.app_state.delete_user(uid)
                self.refresh()

        ctk.CTkButton(bar, text="Add Teacher", command=add).grid(row=0, column=0, padx=(12, 6), pady=12)
        ctk.CTkButton(bar, text="Edit Selected", command=edit).grid(row=0, column=1, padx=6, pady=12)
        ctk.CTkButton(bar, text="Delete Selected", fg_color="#b91c1c", hover_color="#991b1b", command=delete).grid(row=0, column=2, padx=6, pady=12)

    def _students_page(self) -> None:
        page = self._page()
        self._page_title(page, "Manage Students", "Every student rides from one station").grid(row=0, column=0, sticky="ew")
        bar = self._toolbar(page)
        tree = self._make_tree(page, [("name", "Full Name", 300), ("station", "Station", 260)])
        for s in self.app_state.students:
            tree.insert("", "end", iid=s.id, values=(s.full_name, self._station_name(s.station_id)))

        fields = [("name", "Full Name"), ("station", "Assign to Station")]

        def choices():
            return {"station": ["Select a station"] + self._station_names()}

        def add():
            res = self._form_dialog("Add Student", fields, choices())
            if not res:
                return
            station_id = self._station_id_by_name(res["station"]) or ""
            if self._guard("add_student", lambda: self.app_state.add_student(res["name"], station_id)):
                self.refresh()

        def edit():
            s = self.app_state.student(self._selected_id(tree) or "")
            if s is None:
                return
            res = self._form_dialog("Edit Student", fields, choices(), {"name": s.full_name, "station": self._station_name(s.station_id)})
            if not res:
                return
            update = StudentUpdate(full_name=res["name"], station_id=self._station_id_by_name(res["station"]) or "")
            if self._guard("update_student", lambda: self.app_state.update_student(s.id, update)):
                self.refresh()

        def delete():
            sid = self._selected_id(tree)
            if sid and messagebox.askyesno(APP_NAME, "Are you sure?", parent=self):
                self.app_state.delete_student(sid)
                self.refresh()

        ctk.CTkButton(bar, text="Add Student", command=add).grid(row=0, column=0, padx=(12, 6), pady=12)
        ctk.CTkButton(bar, text="Edit Selected", command=edit).grid(row=0, column=1, padx=6, pady=12)
        ctk.CTkButton(bar, text="Delete Selected", fg_color="#b91c1c", hover_color="#991b1b", command=delete).grid(row=0, column=2, padx=6, pady=12)

    def _report_toolbar(self, page: ctk.CTkFrame, with_station: bool) -> tuple[ctk.CTkEntry, ctk.CTkOptionMenu | None, ctk.CTkFrame]:
        bar = self._toolbar(page)
        ctk.CTkLabel(bar, text="Filter by Date").grid(row=0, column=0, padx=(12, 6), pady=12)
        date_entry = ctk.CTkEntry(bar, width=130, placeholder_text="YYYY-MM-DD")
        date_entry.insert(0, date.today().isoformat())
        date_entry.grid(row=0, column=1, padx=6, pady=12)
        station_menu = None
        if with_station:
            ctk.CTkLabel(bar, text="Station").grid(row=0, column=2, padx=(12, 6), pady=12)
            station_menu = ctk.CTkOptionMenu(bar, values=[ALL_STATIONS_LABEL] + self._station_names())
            station_menu.grid(row=0, column=3, padx=6, pady=12)
        return date_entry, station_menu, bar

    def _export_buttons(self, bar: ctk.CTkFrame, current: Callable[[], tuple[list, str, str]]) -> None:
        out_dir = Path(self.settings.export_dir)

        def to_excel():
            rows, _title, filename = current()
            path = export_to_spreadsheet(rows, filename, out_dir)
            messagebox.showinfo(APP_NAME, f"Saved {path}", parent=self)

        def to_pdf():
            rows, title, filename = current()
            path = export_to_document(rows, title, filename, out_dir, self.settings.school_name)
            messagebox.showinfo(APP_NAME, f"Saved {path}", parent=self)

        ctk.CTkButton(bar, text="Export Excel", command=lambda: self._guard("export_excel", to_excel)).grid(row=0, column=6, padx=6, pady=12)
        ctk.CTkButton(bar, text="Export PDF", command=lambda: self._guard("export_pdf", to_pdf)).grid(row=0, column=7, padx=6, pady=12)

    def _fill_report(self, tree: ttk.Treeview, rows, with_station: bool) -> None:
        tree.delete(*tree.get_children())
        for i, r in enumerate(rows):
            values = [r.student_name] + ([r.station_name] if with_station else []) + [r.date.isoformat(), r.status, self.settings.money(r.amount)]
            tree.insert("", "end", iid=str(i), values=values)

    def _admin_reports(self) -> None:
        page = self._page()
        self._page_title(page, "Payment Reports", "Recorded payments by date and station").grid(row=0, column=0, sticky="ew")
        date_entry, station_menu, bar = self._report_toolbar(page, with_station=True)
        tree = self._make_tree(
            page,
            [("student", "Student Name", 220), ("station", "Station", 180), ("date", "Date", 110), ("status", "Status", 100), ("amount", "Amount", 100)],
        )

        def current():
            day = _parse_date_entry(date_entry.get())
            station_id = self._station_id_by_name(station_menu.get()) or ALL_STATIONS
            rows = build_report(self.app_state.payments, self.app_state.students, self.app_state.stations, day, station_id, self.settings.unit_fee)
            return rows, report_title(day), report_filename(day)

        def apply():
            self._fill_report(tree, current()[0], with_station=True)

        ctk.CTkButton(bar, text="Apply", command=lambda: self._guard("admin_report", apply)).grid(row=0, column=5, padx=6, pady=12)
        self._export_buttons(bar, current)
        apply()

    # ---------------- Teacher pages ----------------
    def _teacher_dashboard(self) -> None:
        page = self._page()
        user = self.sessions.current.user
        ov = teacher_overview(user, self.app_state.stations, self.app_state.students, self.app_state.payments, date.today(), self.settings.unit_fee)
        subtitle = f"Station: {ov.station.name}" if ov.station else "No station assigned"
        self._page_title(page, f"Welcome, {user.name}", subtitle).grid(row=0, column=0, sticky="ew")

        cards = ctk.CTkFrame(page, corner_radius=0)
        cards.grid(row=1, column=0, sticky="ew", padx=10)
        cards.grid_columnconfigure((0, 1), weight=1)
        self._stat_card(cards, 0, "Assigned Students", str(ov.assigned_students))
        self._stat_card(cards, 1, "Payments Received Today", self.settings.money(ov.collected_today))

        tree = self._make_tree(page, [("name", "Unpaid Students (Today)", 420)])
        for s in ov.unpaid:
            tree.insert("", "end", iid=s.id, values=(s.full_name,))

    def _payments_page(self) -> None:
        page = self._page()
        self._page_title(page, "Record Daily Payments", "Select a date, then mark each student").grid(row=0, column=0, sticky="ew")
        bar = self._toolbar(page)
        ctk.CTkLabel(bar, text="Select Date").grid(row=0, column=0, padx=(12, 6), pady=12)
        date_entry = ctk.CTkEntry(bar, width=130)
        date_entry.insert(0, date.today().isoformat())
        date_entry.grid(row=0, column=1, padx=6, pady=12)
        tree = self._make_tree(page, [("name", "Student Name", 320), ("status", "Status", 160)])
        station_id = self.sessions.current.user.station_id

        def selected_day() -> date:
            return _parse_date_entry(date_entry.get()) or date.today()

        def fill():
            day = selected_day()
            tree.delete(*tree.get_children())
            for s in students_of(self.app_state.students, station_id):
                tree.insert("", "end", iid=s.id, values=(s.full_name, payment_status_for(self.app_state.payments, s.id, day).label))

        def mark(status: PaymentStatus):
            sid = self._selected_id(tree)
            if sid is None:
                return
            self.app_state.record_payment(self.sessions.current, sid, selected_day(), status)
            fill()
            tree.selection_set(sid)

        ctk.CTkButton(bar, text="Load", command=lambda: self._guard("load_payments", fill)).grid(row=0, column=2, padx=6, pady=12)
        ctk.CTkButton(bar, text="Paid", command=lambda: self._guard("mark_paid", lambda: mark(PaymentStatus.Paid))).grid(
            row=0, column=3, padx=6, pady=12
        )
        ctk.CTkButton(
            bar,
            text="Not Paid",
            fg_color="#b91c1c",
            hover_color="#991b1b",
            command=lambda: self._guard("mark_not_paid", lambda: mark(PaymentStatus.NotPaid)),
        ).grid(row=0, column=4, padx=6, pady=12)
        fill()

    def _teacher_reports(self) -> None:
        page = self._page()
        station = self.app_state.station(self.sessions.current.user.station_id)
        self._page_title(page, "My Station Report", station.name if station else "No station assigned").grid(row=0, column=0, sticky="ew")
        date_entry, _menu, bar = self._report_toolbar(page, with_station=False)
        tree = self._make_tree(page, [("student", "Student Name", 260), ("date", "Date", 120), ("status", "Status", 120), ("amount", "Amount", 120)])

        def current():
            day = _parse_date_entry(date_entry.get())
            rows = build_station_report(self.app_state.payments, self.app_state.students, station, day, self.settings.unit_fee)
            return rows, report_title(day), report_filename(day, station)

        def apply():
            self._fill_report(tree, current()[0], with_station=False)

        ctk.CTkButton(bar, text="Apply", command=lambda: self._guard("teacher_report", apply)).grid(row=0, column=5, padx=6, pady=12)
        self._export_buttons(bar, current)
        apply()


def run_app() -> None:
    _enable_high_dpi()
    app = BusFeesApp()
    app.mainloop()
