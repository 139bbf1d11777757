# /run.py

import subprocess
import threading
import time
import os
import sys

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PORT = os.getenv("PORT", "8000")


def run_fastapi():
  subprocess.run([sys.executable, "-m", "uvicorn", "inventory.main:app", "--host", "0.0.0.0", "--port", PORT], cwd=BASE_DIR)

def run_streamlit():
  time.sleep(2)
  subprocess.run([sys.executable, "-m", "streamlit", "run", "inventory/dashboard.py", "--server.port", "5000", "--server.address", "0.0.0.0"], cwd=BASE_DIR)

if __name__ == "__main__":

  t1 = threading.Thread(target=run_fastapi)
  t1.start()

  # API only: python run.py --api
  if "--api" not in sys.argv:
    t2 = threading.Thread(target=run_streamlit)
    t2.start()
    t2.join()

  t1.join()
