"""
API Endpoint URL Constants

This module defines the URL paths used throughout the application
for accessing the booking resources.

These URLs are relative paths and are prefixed by the mount point of the
sub application (`/admin` or `/public`) when making requests.
"""

# -------------------------------
# Authentication & Accounts
# -------------------------------
URL_ADMIN_TOKEN = "/account/token"
URL_ADMIN_ACCOUNT = "/account"

# -------------------------------
# Fleet
# -------------------------------
URL_BUS_TYPE = "/bus/type"
URL_BUS = "/bus"
URL_SEAT = "/bus/seat"
URL_SEAT_BULK = "/bus/seat/bulk"
URL_SEAT_STATUS = "/bus/seat/status"

# -------------------------------
# Reference catalog
# -------------------------------
URL_DESTINATION = "/destination"
URL_PICKUP_POINT = "/pickup_point"
URL_REFERRAL = "/referral"

# -------------------------------
# Booking & Payment
# -------------------------------
URL_BOOKING = "/booking"
URL_PAYMENT = "/payment/hubtel"
URL_PAYMENT_WEBHOOK = "/payment/hubtel/webhook"

# -------------------------------
# Back office
# -------------------------------
URL_ANALYTICS = "/analytics"
URL_CUSTOMER = "/customer"
