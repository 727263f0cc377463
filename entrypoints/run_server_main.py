import runpy
import traceback

def main():
    try:
        # Equivalent to: python -m motoalert.dev.run_server
        runpy.run_module("motoalert.dev.run_server", run_name="__main__")
    except Exception:
        traceback.print_exc()

if __name__ == "__main__":
    main()
