"""OTP Login — passwordless email-OTP login functions."""
