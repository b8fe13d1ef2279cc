import customtkinter as ctk
from tkinter import filedialog, messagebox
import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from billing import (compute, parse_usage, exceeds_top_tier, describe_schedule,
                     generate_bill_text, build_estimate_table, load_rate_schedule, estimate_figures, CURRENCY)
from cloud_setup import cloud_service
from database import log_action

CHART_POINTS = 60

class EstimatorView(ctk.CTkFrame):
    def __init__(self, parent, controller):
        super().__init__(parent)
        self.controller = controller

        self.line_fig = None
        self.line_canvas = None

        font_normal = controller.font_normal
        font_bold = controller.font_bold
        font_normal_bold = controller.font_normal_bold

        ctk.CTkLabel(self, text="🧮 Bill Estimator", font=font_bold).place(relx=0.02, rely=0.02, anchor="nw")

        self.cloud_button = ctk.CTkButton(self, text="☁️ Cloud Setup", command=controller.show_cloud_setup,
                                          width=140, font=font_normal)
        self.cloud_button.place(relx=0.98, rely=0.02, anchor="ne")

        self.cloud_status_label = ctk.CTkLabel(self, text="", font=controller.font_small)
        self.cloud_status_label.place(relx=0.82, rely=0.025, anchor="ne")

        # --- Left: input and results card ---
        left = ctk.CTkFrame(self)
        left.place(relx=0.02, rely=0.09, relwidth=0.44, relheight=0.89, anchor="nw")

        ctk.CTkLabel(left, text="ENTER UNITS USED ⚡", font=font_normal_bold).pack(anchor="w", padx=15, pady=(15, 5))
        self.units_entry = ctk.CTkEntry(left, placeholder_text="e.g. 205", font=controller.font_bold)
        self.units_entry.pack(fill="x", padx=15)
        self.units_entry.bind("<KeyRelease>", self.update_estimate)

        results = ctk.CTkFrame(left, fg_color="transparent")
        results.pack(fill="x", padx=15, pady=15)
        results.grid_columnconfigure(1, weight=1)

        self.result_labels = {}
        rows = [
            ("energy_cost", "Energy Cost (Slab Rate)"),
            ("demand_charge", "Demand Charge"),
            ("meter_rent", "Meter Rent"),
            ("taxable_base", "Total Base (Subject to Tax)"),
            ("tax_amount", "Tax"),
        ]
        for row, (key, text) in enumerate(rows):
            name_label = ctk.CTkLabel(results, text=text, font=font_normal)
            name_label.grid(row=row, column=0, sticky="w", pady=2)
            value_label = ctk.CTkLabel(results, text="0.00", font=font_normal_bold)
            value_label.grid(row=row, column=1, sticky="e", pady=2)
            self.result_labels[key] = (name_label, value_label)

        ctk.CTkLabel(results, text="EST. TOTAL PAYABLE", font=font_normal_bold).grid(row=len(rows), column=0, sticky="w", pady=(10, 0))
        self.total_label = ctk.CTkLabel(results, text=f"{CURRENCY}0", font=controller.font_bold_large)
        self.total_label.grid(row=len(rows), column=1, sticky="e", pady=(10, 0))

        self.warning_label = ctk.CTkLabel(left, text="", font=controller.font_small, text_color="#d97706",
                                          wraplength=360, justify="left")
        self.warning_label.pack(anchor="w", padx=15)

        self.explainer_label = ctk.CTkLabel(left, text="", font=controller.font_small, wraplength=360, justify="left")
        self.explainer_label.pack(anchor="w", padx=15, pady=10)

        button_frame = ctk.CTkFrame(left, fg_color="transparent")
        button_frame.pack(side="bottom", pady=15)

        ctk.CTkButton(button_frame, text="👁️ View Full Bill", width=130, font=font_normal,
                      command=self.show_bill_popup).pack(side="left", padx=5)
        ctk.CTkButton(button_frame, text="📂 Load Tariff", width=130, font=font_normal,
                      command=self.load_tariff).pack(side="left", padx=5)

        # --- Right: cost curve ---
        self.graph_frame = ctk.CTkFrame(self)
        self.graph_frame.place(relx=0.48, rely=0.09, relwidth=0.5, relheight=0.89, anchor="nw")
        ctk.CTkLabel(self.graph_frame, text="Total Payable vs Units Used", font=font_normal_bold).pack(pady=10)

        self.refresh_data()

    def current_usage(self):
        return parse_usage(self.units_entry.get())

    def refresh_data(self):
        schedule = self.controller.schedule
        self.explainer_label.configure(text=f"ℹ️ {describe_schedule(schedule)}")
        self.update_cloud_status()
        self.update_estimate()
        self.update_charts()

    def update_cloud_status(self):
        if cloud_service.is_connected():
            self.cloud_status_label.configure(text=f"Connected: {cloud_service.project_id}")
        else:
            self.cloud_status_label.configure(text="Not connected")

    def show_figures(self, figures):
        for key, (name_label, value_label) in self.result_labels.items():
            value_label.configure(text=figures[key])
        self.total_label.configure(text=figures["total"])

    def update_estimate(self, event=None):
        schedule = self.controller.schedule
        try:
            usage = self.current_usage()
        except ValueError:
            self.show_figures(estimate_figures(None))
            self.warning_label.configure(text="Enter a non-negative number of units.")
            return

        bill = compute(usage, schedule)
        self.show_figures(estimate_figures(bill))
        self.result_labels["tax_amount"][0].configure(text=f"{schedule.tax_label} ({schedule.tax_rate * 100:g}%)")
        self.result_labels["taxable_base"][0].configure(text=f"Total Base (Subject to {schedule.tax_label})")

        if exceeds_top_tier(usage, schedule):
            self.warning_label.configure(
                text=f"⚠️ Units above {schedule.top_ceiling:g} are not covered by any slab; this estimate is too low.")
        else:
            self.warning_label.configure(text="")

    def update_charts(self):
        schedule = self.controller.schedule

        if self.line_canvas:
            self.line_canvas.get_tk_widget().destroy()
        if self.line_fig:
            plt.close(self.line_fig)

        upper = schedule.top_ceiling * 1.25
        usages = [upper * i / CHART_POINTS for i in range(CHART_POINTS + 1)]
        df = build_estimate_table(usages, schedule)

        self.line_fig, ax = plt.subplots(figsize=(5, 4), dpi=100)
        ax.plot(df["usage_kwh"], df["total_payable"], linewidth=2, label="Total Payable")
        ax.plot(df["usage_kwh"], df["energy_cost"], linestyle="--", label="Energy Cost")
        for tier in schedule.tiers:
            ax.axvline(tier.ceiling, color="gray", linewidth=0.5)
        # Uncharged region above the top slab
        ax.axvspan(schedule.top_ceiling, upper, color="#d97706", alpha=0.1)
        ax.set_xlabel("Units (kWh)")
        ax.set_ylabel(f"Amount ({CURRENCY})")
        ax.legend()
        self.line_fig.tight_layout()

        self.line_canvas = FigureCanvasTkAgg(self.line_fig, master=self.graph_frame)
        self.line_canvas.draw()
        self.line_canvas.get_tk_widget().pack(side="top", fill="both", expand=True, padx=10, pady=10)

    def show_bill_popup(self):
        try:
            usage = self.current_usage()
        except ValueError as e:
            messagebox.showerror("Error", str(e))
            return

        bill_text = generate_bill_text(usage, self.controller.schedule)
        log_action(self.controller.actor, f"Viewed full bill for {usage:.2f} kWh.")
        self.controller.show_bill_popup(bill_text, title="Estimated Bill")

    def load_tariff(self):
        path = filedialog.askopenfilename(title="Select Tariff File", filetypes=[("JSON files", "*.json")])
        if not path:
            return

        try:
            schedule = load_rate_schedule(path)
        except (FileNotFoundError, ValueError) as e:
            log_action(self.controller.actor, f"Failed to load tariff file {path}.")
            messagebox.showerror("Error", f"{e}\n\nThe previous tariff is still in use.")
            return

        log_action(self.controller.actor, f"Loaded tariff '{schedule.name}' from {path}.")
        self.controller.set_schedule(schedule)
        messagebox.showinfo("Success", f"Now using tariff '{schedule.name}'.")
