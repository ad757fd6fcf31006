"""
Client side of the Biometric Access demo: API client, biometric widget
handle, liveness monitor, enrollment/verification flows and the Gradio UI.
"""
