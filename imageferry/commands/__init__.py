"""imageferry CLI commands"""
