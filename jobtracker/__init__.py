"""Personal job application tracker backed by Cloud Firestore."""
