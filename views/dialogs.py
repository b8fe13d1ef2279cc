import customtkinter as ctk
from tkinter import messagebox

from cloud_setup import connect, IngestError, INVALID_CONFIG_HINT, SETUP_CHECKLIST, PASTE_INSTRUCTIONS
from database import log_action

PLACEHOLDER_CONFIG = 'const firebaseConfig = {\n  apiKey: "...",\n  authDomain: "...",\n  ...\n};'

class BillViewDialog(ctk.CTkToplevel):
    def __init__(self, parent, title, bill_text):
        super().__init__(parent)
        self.title(title)
        self.geometry("640x700")

        font_mono = ctk.CTkFont(family="Courier", size=14)

        textbox = ctk.CTkTextbox(self, font=font_mono, wrap="word")
        textbox.pack(fill="both", expand=True, padx=10, pady=10)

        textbox.insert("1.0", bill_text)
        textbox.configure(state="disabled")

        close_button = ctk.CTkButton(self, text="Close", command=self.destroy)
        close_button.pack(pady=10)

        self.after(100, self.lift)
        self.grab_set()

class CloudSetupDialog(ctk.CTkToplevel):
    def __init__(self, parent, controller, service, on_connected=None):
        super().__init__(parent)
        self.controller = controller
        self.service = service
        self.on_connected = on_connected

        self.title("Cloud Setup")
        self.geometry("560x560")

        font_normal = self.controller.font_normal
        font_small = self.controller.font_small

        main_frame = ctk.CTkFrame(self)
        main_frame.pack(fill="both", expand=True, padx=20, pady=20)

        ctk.CTkLabel(main_frame, text="☁️ Cloud Setup", font=self.controller.font_bold_large).pack(anchor="w", pady=(0, 5))
        ctk.CTkLabel(main_frame, text="Connect your own Firebase project to sync your data.",
                     font=font_small).pack(anchor="w", pady=(0, 10))

        checklist_frame = ctk.CTkFrame(main_frame)
        checklist_frame.pack(fill="x", pady=(0, 10))
        ctk.CTkLabel(checklist_frame, text="BEFORE CONNECTING:", font=self.controller.font_normal_bold).pack(anchor="w", padx=10, pady=(5, 0))
        for step in SETUP_CHECKLIST:
            ctk.CTkLabel(checklist_frame, text=f"✅ {step}", font=font_small).pack(anchor="w", padx=10)

        ctk.CTkLabel(main_frame, text="Paste Firebase Config:", font=self.controller.font_normal_bold).pack(anchor="w", pady=(10, 0))
        self.config_textbox = ctk.CTkTextbox(main_frame, height=160, font=ctk.CTkFont(family="Courier", size=12))
        self.config_textbox.pack(fill="both", expand=True, pady=5)

        ctk.CTkLabel(main_frame, text=f"Example:\n{PLACEHOLDER_CONFIG}", font=ctk.CTkFont(family="Courier", size=11),
                     justify="left", text_color="gray").pack(anchor="w")
        ctk.CTkLabel(main_frame, text=PASTE_INSTRUCTIONS, font=font_small, wraplength=480,
                     justify="left").pack(anchor="w", pady=(0, 10))

        button_frame = ctk.CTkFrame(main_frame, fg_color="transparent")
        button_frame.pack(side="bottom", anchor="e")

        cancel_button = ctk.CTkButton(button_frame, text="Cancel", command=self.destroy, fg_color="gray", font=font_normal)
        cancel_button.pack(side="left", padx=10)

        connect_button = ctk.CTkButton(button_frame, text="💾 Connect", command=self.handle_connect, font=font_normal)
        connect_button.pack(side="left", padx=10)

        self.after(100, self.lift)
        self.grab_set()
        self.config_textbox.focus()

    def handle_connect(self):
        raw = self.config_textbox.get("1.0", "end-1c")
        actor = self.controller.actor

        try:
            config = connect(raw, self.service)
        except IngestError as e:
            log_action(actor, f"Cloud connection failed ({e.kind}).")
            messagebox.showerror("Invalid Configuration", f"{e.message}\n\n{INVALID_CONFIG_HINT}", parent=self)
            return

        log_action(actor, f"Connected to cloud project '{config['projectId']}'.")
        messagebox.showinfo("Success", f"Connected to project '{config['projectId']}'.", parent=self)
        if self.on_connected:
            self.on_connected()
        self.destroy()
