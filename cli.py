import getpass
import math
import sys
import os

# --- Import from project files ---
# The GUI uses the same logic.
from database import setup_database, log_action, recent_actions, known_actors
from billing import (DEFAULT_SCHEDULE, generate_bill_text, describe_schedule, load_rate_schedule,
                     parse_usage, compute, round_display, exceeds_top_tier, build_estimate_table,
                     slab_labels, CURRENCY)
from cloud_setup import (connect, cloud_service, IngestError, INVALID_CONFIG_HINT,
                         SETUP_CHECKLIST, PASTE_INSTRUCTIONS)


# --- CLI Helper Functions ---

def clear_screen():
    """Clears the terminal screen."""
    os.system('cls' if os.name == 'nt' else 'clear')

def wait_for_enter():
    """Pauses execution until the user presses Enter."""
    input("\nPress Enter to continue...")

def print_header(title, session=None):
    """Clears screen and prints a consistent header."""
    clear_screen()
    print("=" * 60)
    print("--- UTILITY BILL HELPER (CLI) ---")
    if session:
        print(f"--- Tariff: {session['schedule'].name}")
        if cloud_service.is_connected():
            print(f"--- Cloud: connected to {cloud_service.project_id}")
    print("=" * 60)
    print(f"\n>> {title}\n")

def new_session():
    return {'actor': getpass.getuser(), 'schedule': DEFAULT_SCHEDULE}

# --- Bill Estimator ---

def handle_estimate(session):
    """Asks for units used and prints the estimate."""
    print_header("Bill Estimator", session)
    schedule = session['schedule']

    try:
        usage = parse_usage(input("Enter Units Used (kWh, e.g. 205): "))
    except ValueError as e:
        print(f"\nError: {e}")
        wait_for_enter()
        return

    bill = compute(usage, schedule)
    print(f"\nEnergy Cost (Slab Rate):  {bill.energy_cost:>10.2f}")
    print(f"Demand Charge:            {bill.demand_charge:>10.2f}")
    print(f"Meter Rent:               {bill.meter_rent:>10.2f}")
    print("-" * 37)
    base_label = f"Total Base (Subject to {schedule.tax_label}):"
    tax_label = f"{schedule.tax_label} ({schedule.tax_rate * 100:g}%):"
    print(f"{base_label:<26}{bill.taxable_base:>10.2f}")
    print(f"{tax_label:<26}{bill.tax_amount:>10.2f}")
    print("-" * 37)
    print(f"EST. TOTAL PAYABLE:       {CURRENCY}{round_display(bill.total_payable)}")
    if exceeds_top_tier(usage, schedule):
        print(f"\nWarning: units above {schedule.top_ceiling:g} kWh are not covered by any slab; the estimate is too low.")

    log_action(session['actor'], f"Estimated bill for {usage:.2f} kWh ({schedule.name}).")

    choice = input("\nShow the full itemized bill? (y/n): ").lower()
    if choice == 'y':
        clear_screen()
        bill_text = generate_bill_text(usage, schedule)
        print(bill_text)
        export_choice = input("\nDo you want to export this bill to a .txt file? (y/n): ").lower()
        if export_choice == 'y':
            export_bill_to_txt(bill_text, usage, session['actor'])

    wait_for_enter()

def export_bill_to_txt(bill_text, usage, actor):
    try:
        filename = f"BILL_ESTIMATE_{usage:g}kWh.txt"

        with open(filename, "w", encoding="utf-8") as f:
            f.write(bill_text)

        print(f"\nSuccess: Bill exported to {os.path.abspath(filename)}")
        log_action(actor, f"Exported bill estimate for {usage:.2f} kWh.")
    except OSError as e:
        print(f"\nError: Could not export bill. {e}")

# --- Tariff ---

def handle_view_tariff(session):
    print_header("Applied Tariff", session)
    schedule = session['schedule']

    print(f"{'Band (kWh)':<15} | {'Rate / unit':<12}")
    print("-" * 30)
    for label, tier in zip(slab_labels(schedule), schedule.tiers):
        print(f"{label:<15} | {tier.rate:<12.2f}")
    print("-" * 30)
    print(f"Demand Charge: {schedule.demand_charge:.2f}")
    print(f"Meter Rent:    {schedule.meter_rent:.2f}")
    print(f"{schedule.tax_label + ':':<15}{schedule.tax_rate * 100:g}%")
    print(f"\n{describe_schedule(schedule)}")
    print(f"Note: usage above {schedule.top_ceiling:g} kWh is not charged by this tariff.")
    wait_for_enter()

def handle_load_tariff(session):
    """Replaces the session tariff with one read from a JSON file."""
    print_header("Load Tariff From File", session)
    path = input("Path to tariff JSON file (blank to restore the default): ").strip()

    if not path:
        session['schedule'] = DEFAULT_SCHEDULE
        log_action(session['actor'], "Restored the default tariff.")
        print(f"\nTariff reset to {DEFAULT_SCHEDULE.name}.")
        wait_for_enter()
        return

    try:
        schedule = load_rate_schedule(path)
    except (FileNotFoundError, ValueError) as e:
        log_action(session['actor'], f"Failed to load tariff file {path}.")
        print(f"\nError: {e}")
        print("The previous tariff is still in use.")
        wait_for_enter()
        return

    session['schedule'] = schedule
    log_action(session['actor'], f"Loaded tariff '{schedule.name}' from {path}.")
    print(f"\nSuccess! Now using tariff '{schedule.name}' with {len(schedule.tiers)} slabs.")
    wait_for_enter()

MAX_EXPORT_ROWS = 10000

def handle_export_table(session):
    """Exports an estimate table (one row per usage step) to Excel."""
    print_header("Export Estimate Table to Excel", session)
    schedule = session['schedule']

    try:
        step = float(input("Usage step in kWh (e.g. 25): "))
        upper = float(input(f"Up to kWh (e.g. {schedule.top_ceiling:g}): "))
        if not (math.isfinite(step) and math.isfinite(upper)):
            raise ValueError("step and upper bound must be finite")
        if step <= 0 or upper < 0:
            raise ValueError("step must be positive and the upper bound non-negative")
        if upper / step + 1 > MAX_EXPORT_ROWS:
            raise ValueError(f"the table would exceed {MAX_EXPORT_ROWS} rows; use a larger step")
    except ValueError as e:
        print(f"\nError: Invalid number ({e}).")
        wait_for_enter()
        return

    usages = []
    usage = 0.0
    while usage <= upper:
        usages.append(usage)
        usage += step

    try:
        df = build_estimate_table(usages, schedule)
        filename = "estimate_table.xlsx"
        df.to_excel(filename, index=False, engine='openpyxl')
        log_action(session['actor'], f"Exported estimate table ({len(df)} rows) to Excel.")
        print(f"Estimate table exported successfully to:\n{os.path.abspath(filename)}")
    except Exception as e:
        print(f"An error occurred: {e}")

    wait_for_enter()

# --- Cloud Setup ---

def read_pasted_config():
    """Reads a multi-line paste up to a line containing only END (or end of input)."""
    print("Paste your config below, then type END on its own line:")
    lines = []
    while True:
        try:
            line = input()
        except EOFError:
            break
        if line.strip().upper() == "END":
            break
        lines.append(line)
    return "\n".join(lines)

def handle_cloud_setup(session):
    print_header("Cloud Setup", session)

    print("Before Connecting:")
    for step in SETUP_CHECKLIST:
        print(f"  [x] {step}")
    print(f"\n{PASTE_INSTRUCTIONS}\n")

    raw = read_pasted_config()
    try:
        config = connect(raw, cloud_service)
    except IngestError as e:
        log_action(session['actor'], f"Cloud connection failed ({e.kind}).")
        print(f"\nError: Invalid Configuration. {e.message}")
        print(INVALID_CONFIG_HINT)
        wait_for_enter()
        return

    log_action(session['actor'], f"Connected to cloud project '{config['projectId']}'.")
    print(f"\nSuccess! Connected to project '{config['projectId']}'.")
    wait_for_enter()

def handle_disconnect(session):
    print_header("Disconnect Cloud", session)
    if not cloud_service.is_connected():
        print("Not connected.")
    else:
        project_id = cloud_service.project_id
        cloud_service.disconnect()
        log_action(session['actor'], f"Disconnected from cloud project '{project_id}'.")
        print(f"Disconnected from '{project_id}'.")
    wait_for_enter()

# --- Action Log ---

def handle_view_log(session):
    """Allows filtering and viewing the action log."""
    print_header("View Action Log", session)

    actor_list = ["All Users"] + known_actors()
    print("Filter by User:")
    for i, actor in enumerate(actor_list):
        print(f"  {i}. {actor}")

    try:
        choice = int(input("Enter number (0 for All Users): "))
        if choice < 0 or choice >= len(actor_list):
            selected_actor = "All Users"
        else:
            selected_actor = actor_list[choice]
    except ValueError:
        selected_actor = "All Users"

    log_df = recent_actions(None if selected_actor == "All Users" else selected_actor)

    clear_screen()
    print(f"--- Action Log (Filter: {selected_actor}) ---")
    if log_df.empty:
        print("Log is empty.")
    else:
        print(f"\n{'Timestamp':<20} | {'User':<15} | {'Action':<50}")
        print("-" * 88)
        for index, row in log_df.iterrows():
            print(f"{row['timestamp']:<20} | {row['actor']:<15} | {row['action']:<50}")

    wait_for_enter()

# --- MAIN PROGRAM LOOP ---

MENU = [
    ("Estimate a Bill", handle_estimate),
    ("View Applied Tariff", handle_view_tariff),
    ("Load Tariff From File", handle_load_tariff),
    ("Export Estimate Table to Excel", handle_export_table),
    ("Connect Cloud Backend", handle_cloud_setup),
    ("Disconnect Cloud Backend", handle_disconnect),
    ("View Action Log", handle_view_log),
]

def main():
    """Main program loop."""
    setup_database()
    session = new_session()
    log_action(session['actor'], "Started the CLI.")

    while True:
        print_header("Main Menu", session)
        for i, (label, _) in enumerate(MENU, start=1):
            print(f"{i}. {label}")
        print(f"{len(MENU) + 1}. Exit")
        choice = input("Enter choice: ")

        if choice == str(len(MENU) + 1):
            print("Exiting program. Goodbye.")
            sys.exit()

        if not choice.isdigit() or not 1 <= int(choice) <= len(MENU):
            print(f"Invalid choice. Please enter 1 to {len(MENU) + 1}.")
            wait_for_enter()
            continue
        MENU[int(choice) - 1][1](session)

if __name__ == "__main__":
    main()
