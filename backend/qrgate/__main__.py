from qrgate.main import run

run()
