import getpass
import customtkinter as ctk
import matplotlib
import matplotlib.pyplot as plt

# --- Local App Imports ---
import database
from billing import DEFAULT_SCHEDULE
from cloud_setup import cloud_service
from views.estimator_view import EstimatorView
from views.dialogs import BillViewDialog, CloudSetupDialog

# Tell matplotlib to use the Tkinter backend
matplotlib.use("TkAgg")

class BillHelperApp(ctk.CTk):
    def __init__(self):
        super().__init__()

        self.title("Utility Bill Helper")
        self.geometry("1000x760")

        # --- 1. Define Fonts ---
        self.font_normal = ctk.CTkFont(family="Bahnschrift", size=14)
        self.font_bold = ctk.CTkFont(family="Bahnschrift", size=18, weight="bold")
        self.font_bold_large = ctk.CTkFont(family="Bahnschrift", size=24, weight="bold")
        self.font_title = ctk.CTkFont(family="Bahnschrift", size=28, weight="bold")
        self.font_normal_bold = ctk.CTkFont(family="Bahnschrift", size=14, weight="bold")
        self.font_small = ctk.CTkFont(family="Bahnschrift", size=12)

        self.chart_light_style = {
            'figure.facecolor': '#ebebeb', 'axes.facecolor': '#ffffff',
            'text.color': '#1c1c1c', 'axes.labelcolor': '#1c1c1c',
            'xtick.color': '#1c1c1c', 'ytick.color': '#1c1c1c', 'axes.edgecolor': '#1c1c1c'
        }
        self.chart_dark_style = {
            'figure.facecolor': '#2b2b2b', 'axes.facecolor': '#3c3c3c',
            'text.color': '#dce4ee', 'axes.labelcolor': '#dce4ee',
            'xtick.color': '#dce4ee', 'ytick.color': '#dce4ee', 'axes.edgecolor': '#dce4ee'
        }

        # --- 2. Session State ---
        self.actor = getpass.getuser()
        self.schedule = DEFAULT_SCHEDULE

        # --- 3. Main Title ---
        title_label = ctk.CTkLabel(self, text="UTILITY BILL HELPER", font=self.font_title)
        title_label.pack(side="top", pady=(20, 10))

        # --- 4. Frame Container ---
        container = ctk.CTkFrame(self)
        container.pack(side="top", fill="both", expand=True)
        container.grid_rowconfigure(0, weight=1)
        container.grid_columnconfigure(0, weight=1)

        self.estimator_view = EstimatorView(parent=container, controller=self)
        self.estimator_view.grid(row=0, column=0, sticky="nsew")

        self.update_chart_styles()

    def set_schedule(self, schedule):
        """Switches the estimator to a new tariff."""
        self.schedule = schedule
        self.estimator_view.refresh_data()

    def update_chart_styles(self):
        """Updates Matplotlib's theme to match the app's Light/Dark mode."""
        mode = ctk.get_appearance_mode()
        style_dict = self.chart_light_style if mode == "Light" else self.chart_dark_style
        for key, value in style_dict.items():
            plt.rcParams[key] = value
        self.estimator_view.update_charts()

    def show_bill_popup(self, bill_text, title="View Bill"):
        """Shared function to open the bill pop-up dialog."""
        if hasattr(self, 'bill_dialog') and self.bill_dialog.winfo_exists():
            self.bill_dialog.focus()
            return

        self.bill_dialog = BillViewDialog(parent=self, title=title, bill_text=bill_text)
        self.bill_dialog.grab_set()

    def show_cloud_setup(self):
        """Opens the paste-your-config dialog."""
        if hasattr(self, 'cloud_dialog') and self.cloud_dialog.winfo_exists():
            self.cloud_dialog.focus()
            return

        self.cloud_dialog = CloudSetupDialog(parent=self, controller=self, service=cloud_service,
                                             on_connected=self.on_cloud_connected)
        self.cloud_dialog.grab_set()

    def on_cloud_connected(self):
        self.estimator_view.update_cloud_status()


if __name__ == "__main__":
    ctk.set_default_color_theme("blue")

    database.setup_database()

    app = BillHelperApp()
    app.mainloop()
