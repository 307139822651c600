"""
API Routers - Organized endpoint handlers for the Hostel API.

Each router handles a specific domain:
- rooms, bookings: Room listing and the student's own booking
- admin_bookings: Approve, confirm, reject, vacate and leave approval
- outpasses, complaints: Student requests behind the duplicate-request guard
- notices, notifications, mess: Announcements and the weekly menu
- profile, admin_users: Profiles, roles and archived accounts
"""
