"""
Aggregate SQL for the dealer reports.

Every statement takes bound parameters: %(dealer_code)s, %(start)s and %(end)s
(datetimes, rendered by pymysql as 'YYYY-MM-DD HH:MM:SS'), plus
%(campaign_ids)s where a tuple of campaign ids is needed.
"""

# BDC report: dealer -> customer -> vehicle -> opportunity -> campaign
_BDC_OPPORTUNITY_JOINS = """
    auto_dealer
        INNER JOIN auto_custom_auto_dealer_c ON auto_custom_auto_dealer_c.auto_custo60bd_dealer_ida = auto_dealer.id
        AND auto_custom_auto_dealer_c.deleted = 0
        INNER JOIN auto_customer ON auto_custom_auto_dealer_c.auto_custo0932ustomer_idb = auto_customer.id
        AND auto_customer.deleted = 0
        INNER JOIN auto_vehicluto_customer_c ON auto_vehicluto_customer_c.auto_vehic9275ustomer_ida = auto_customer.id
        AND auto_vehicluto_customer_c.deleted = 0
        INNER JOIN auto_vehicle ON auto_vehicluto_customer_c.auto_vehic831dvehicle_idb = auto_vehicle.id
        AND auto_vehicle.deleted = 0
        INNER JOIN auto_vehiclpportunities_c ON auto_vehiclpportunities_c.auto_vehicce49vehicle_ida = auto_vehicle.id
        AND auto_vehiclpportunities_c.deleted = 0
        INNER JOIN opportunities ON opportunities.id = auto_vehiclpportunities_c.auto_vehicb672unities_idb
        AND opportunities.deleted = 0
        INNER JOIN auto_campaipportunities_c ON auto_campaipportunities_c.auto_campae5baunities_idb = opportunities.id
        AND auto_campaipportunities_c.deleted = 0
        INNER JOIN auto_campaign ON auto_campaipportunities_c.auto_campa1b75ampaign_ida = auto_campaign.id
        AND auto_campaign.deleted = 0
"""

BDC_OPPORTUNITIES_CONTACTED = f"""
SELECT
    auto_campaign.name AS autoCampaignName,
    COUNT(DISTINCT opportunities.id) AS totalOpportunities,
    COUNT(last_contacted_date) AS totalOpportunitiesContacted,
    COUNT(
        DISTINCT IF(
            auto_vehicle.sold = 1 AND auto_vehicle_audit.id IS NOT NULL,
            auto_vehicle.id,
            NULL
        )
    ) AS soldVehicles
FROM
    {_BDC_OPPORTUNITY_JOINS}
    LEFT JOIN auto_vehicle_audit ON auto_vehicle_audit.parent_id = auto_vehicle.id
        AND field_name = 'sold'
        AND auto_vehicle_audit.before_value_string = '0'
        AND auto_vehicle_audit.after_value_string = '1'
        AND auto_vehicle_audit.date_created BETWEEN %(start)s AND %(end)s
    LEFT JOIN auto_contact_person ON auto_contact_person.user_id_c = opportunities.assigned_user_id
        AND auto_contact_person.deleted = 0
    LEFT JOIN auto_contac_auto_dealer_c ON auto_contac_auto_dealer_c.auto_contaff8f_person_idb = auto_contact_person.id
        AND auto_contac_auto_dealer_c.deleted = 0
WHERE
    auto_dealer.integralink_code = %(dealer_code)s
    AND opportunities.date_entered BETWEEN %(start)s AND %(end)s
    AND (
        auto_contact_person.id IS NULL
        OR (
            auto_contact_person.id IS NOT NULL
            AND auto_contac_auto_dealer_c.auto_contafb84_dealer_ida = auto_dealer.id
        )
    )
GROUP BY auto_campaign.name
ORDER BY auto_campaign.name
"""

BDC_OPPORTUNITIES_TEXTED_CALLED = f"""
SELECT
    auto_campaign.name AS autoCampaignName,
    SUM(IF(tasks.name = 'Text', 1, 0)) AS totalOpportunitiesTexted,
    SUM(IF(tasks.name = 'Call', 1, 0)) AS totalOpportunitiesCalled
FROM
    {_BDC_OPPORTUNITY_JOINS}
    INNER JOIN tasks ON tasks.parent_id = opportunities.id
        AND tasks.parent_type = 'Opportunities'
    LEFT JOIN auto_contact_person ON auto_contact_person.user_id_c = opportunities.assigned_user_id
        AND auto_contact_person.deleted = 0
    LEFT JOIN auto_contac_auto_dealer_c ON auto_contac_auto_dealer_c.auto_contaff8f_person_idb = auto_contact_person.id
        AND auto_contac_auto_dealer_c.deleted = 0
WHERE
    auto_dealer.integralink_code = %(dealer_code)s
    AND opportunities.date_entered BETWEEN %(start)s AND %(end)s
    AND (
        auto_contact_person.id IS NULL
        OR (
            auto_contact_person.id IS NOT NULL
            AND auto_contac_auto_dealer_c.auto_contafb84_dealer_ida = auto_dealer.id
        )
    )
GROUP BY auto_campaign.name
"""

BDC_APPOINTMENTS = f"""
SELECT
    auto_campaign.name AS autoCampaignName,
    COUNT(opportunities.last_contacted_date) AS totalAppointments,
    SUM(
        IF(auto_appointment.appointment_with_ade_ro = 1 OR auto_appointment.appointment_with_ro = 1, 1, 0)
    ) AS totalAppointmentsArrived
FROM
    {_BDC_OPPORTUNITY_JOINS}
    INNER JOIN auto_contact_person ON auto_contact_person.user_id_c = opportunities.assigned_user_id
        AND auto_contact_person.deleted = 0
    INNER JOIN auto_contac_auto_dealer_c ON auto_contac_auto_dealer_c.auto_contaff8f_person_idb = auto_contact_person.id
        AND auto_contac_auto_dealer_c.deleted = 0
    INNER JOIN auto_appointment ON opportunities.id = auto_appointment.opportunity_id_c
        AND auto_appointment.deleted = 0
WHERE
    auto_dealer.integralink_code = %(dealer_code)s
    AND opportunities.last_contacted_date IS NOT NULL
    AND auto_appointment.appointment_date BETWEEN %(start)s AND %(end)s
    AND auto_contac_auto_dealer_c.auto_contafb84_dealer_ida = auto_dealer.id
GROUP BY auto_campaign.name
"""

BDC_REPAIR_ORDER_REVENUE = """
SELECT
    auto_campaign.name AS autoCampaignName,
    COUNT(auto_repair_order.id) AS totalRepairOrders,
    SUM(REPLACE(repair_order_amount_total, ',', '')) AS revenue
FROM
    auto_dealer
    INNER JOIN auto_custom_auto_dealer_c ON auto_custom_auto_dealer_c.auto_custo60bd_dealer_ida = auto_dealer.id
        AND auto_custom_auto_dealer_c.deleted = 0
    INNER JOIN auto_customer ON auto_custom_auto_dealer_c.auto_custo0932ustomer_idb = auto_customer.id
        AND auto_customer.deleted = 0
    INNER JOIN auto_vehicluto_customer_c ON auto_vehicluto_customer_c.auto_vehic9275ustomer_ida = auto_customer.id
        AND auto_vehicluto_customer_c.deleted = 0
    INNER JOIN auto_vehicle ON auto_vehicluto_customer_c.auto_vehic831dvehicle_idb = auto_vehicle.id
        AND auto_vehicle.deleted = 0
    INNER JOIN auto_repairauto_vehicle_c ON auto_repairauto_vehicle_c.auto_repai4169vehicle_ida = auto_vehicle.id
        AND auto_repairauto_vehicle_c.deleted = 0
    INNER JOIN auto_repair_order ON auto_repairauto_vehicle_c.auto_repai527cr_order_idb = auto_repair_order.id
        AND auto_repair_order.deleted = 0
    INNER JOIN opportunities ON auto_repair_order.opportunity_id_c = opportunities.id
        AND opportunities.deleted = 0
    INNER JOIN auto_campaipportunities_c ON auto_campaipportunities_c.auto_campae5baunities_idb = opportunities.id
        AND auto_campaipportunities_c.deleted = 0
    INNER JOIN auto_campaign ON auto_campaipportunities_c.auto_campa1b75ampaign_ida = auto_campaign.id
        AND auto_campaign.deleted = 0
    INNER JOIN auto_contact_person ON auto_contact_person.user_id_c = opportunities.assigned_user_id
        AND auto_contact_person.deleted = 0
    INNER JOIN auto_contac_auto_dealer_c ON auto_contac_auto_dealer_c.auto_contaff8f_person_idb = auto_contact_person.id
        AND auto_contac_auto_dealer_c.deleted = 0
WHERE
    auto_dealer.integralink_code = %(dealer_code)s
    AND auto_repair_order.service_closed_date BETWEEN %(start)s AND %(end)s
    AND opportunities.last_contacted_date IS NOT NULL
    AND auto_contac_auto_dealer_c.auto_contafb84_dealer_ida = auto_dealer.id
GROUP BY auto_campaign.name
"""

# ROI report
ROI_CAMPAIGNS = """
SELECT
    auto_campaign.id AS campaignId,
    auto_campaign.name AS campaignName,
    auto_campaign.type AS campaignType,
    COUNT(DISTINCT IF(auto_event.body_type = 'Text', auto_event.id, NULL)) AS textMessageNo,
    COUNT(DISTINCT IF(auto_event.type = 'Sent', auto_event.id, NULL)) AS emailNo,
    COUNT(DISTINCT auto_repair_order.id) AS roNo,
    SUM(REPLACE(repair_order_amount_total, ',', '')) AS roTotal
FROM
    auto_event
    INNER JOIN auto_event_to_recipient_c ON auto_event.id = auto_event_to_recipient_c.auto_eventfa83o_event_idb
        AND auto_event_to_recipient_c.deleted = 0
    INNER JOIN auto_recipient ON auto_event_to_recipient_c.auto_eventa735cipient_ida = auto_recipient.id
        AND auto_recipient.deleted = 0
    INNER JOIN auto_recipiuto_campaign_c ON auto_recipiuto_campaign_c.auto_recip885bcipient_idb = auto_recipient.id
        AND auto_recipiuto_campaign_c.deleted = 0
    INNER JOIN auto_campaign ON auto_campaign.id = auto_recipiuto_campaign_c.auto_recip8ba3ampaign_ida
        AND auto_campaign.deleted = 0
    INNER JOIN auto_campai_auto_dealer_c ON auto_campai_auto_dealer_c.auto_campa2d6bampaign_idb = auto_campaign.id
        AND auto_campai_auto_dealer_c.deleted = 0
    INNER JOIN auto_dealer ON auto_campai_auto_dealer_c.auto_campa1fd9_dealer_ida = auto_dealer.id
    LEFT JOIN auto_repair_order FORCE INDEX FOR JOIN (idx_auto_repair_order_auto_event_id_c)
        ON auto_repair_order.auto_event_id_c = auto_event.id
        AND auto_repair_order.deleted = 0
WHERE
    auto_dealer.integralink_code = %(dealer_code)s
    AND auto_campaign.included_in_roi = 1
    AND auto_event.sent_date BETWEEN %(start)s AND %(end)s
    AND (
        auto_event.type = 'Sent'
        OR (
            auto_event.body_type = 'Text'
            AND auto_event.generated_from = 'System'
            AND auto_event.type = 'Not-Pending'
        )
    )
GROUP BY auto_campaign.id
ORDER BY auto_campaign.name
"""

_APPOINTMENT_ENTERED = """IF(
        opportunities.last_contacted_date < auto_appointment.date_entered,
        auto_appointment.date_entered,
        auto_appointment.reschedule_date
    )"""

ROI_APPOINTMENTS = f"""
SELECT
    auto_campaign.id AS campaignId,
    COUNT({_APPOINTMENT_ENTERED}) AS appointmentNo,
    SUM(
        IF(auto_appointment.appointment_with_ade_ro = 1 OR auto_appointment.appointment_with_ro = 1, 1, 0)
    ) AS arrivedAppointmentNo
FROM
    auto_campaign
    INNER JOIN auto_recipiuto_campaign_c ON auto_campaign.id = auto_recipiuto_campaign_c.auto_recip8ba3ampaign_ida
        AND auto_recipiuto_campaign_c.deleted = 0
    INNER JOIN auto_recipient ON auto_recipiuto_campaign_c.auto_recip885bcipient_idb = auto_recipient.id
        AND auto_recipient.deleted = 0
    INNER JOIN auto_vehicle ON auto_recipient.auto_vehicle_id_c = auto_vehicle.id
        AND auto_vehicle.deleted = 0
    INNER JOIN auto_vehiclpportunities_c ON auto_vehiclpportunities_c.auto_vehicce49vehicle_ida = auto_vehicle.id
        AND auto_vehiclpportunities_c.deleted = 0
    INNER JOIN opportunities ON opportunities.id = auto_vehiclpportunities_c.auto_vehicb672unities_idb
        AND opportunities.deleted = 0
    INNER JOIN auto_appointment ON auto_appointment.opportunity_id_c = opportunities.id
        AND auto_appointment.deleted = 0
WHERE
    auto_campaign.id IN %(campaign_ids)s
    AND opportunities.last_contacted_date IS NOT NULL
    AND (
        ({_APPOINTMENT_ENTERED} >= %(start)s AND {_APPOINTMENT_ENTERED} <= %(end)s)
        OR auto_appointment.appointment_date BETWEEN %(start)s AND %(end)s
    )
GROUP BY auto_campaign.id
"""

# Video reports: whole dealer database, no dealer filter
VIDEO_REPAIR_ORDER_COUNT = """
SELECT COUNT(id) AS repairOrderCount
FROM auto_repair_order
WHERE deleted = 0
    AND service_closed_date BETWEEN %(start)s AND %(end)s
"""

VIDEO_APPOINTMENT_COUNT = """
SELECT COUNT(id) AS appointmentCount
FROM auto_appointment
WHERE deleted = 0
    AND appointment_date BETWEEN %(start)s AND %(end)s
"""

VIDEO_SENT_COUNT = """
SELECT COUNT(DISTINCT auto_event.id) AS videosSent
FROM auto_event
WHERE auto_event.deleted = 0
    AND auto_event.generated_from = 'Comunicator'
    AND auto_event.type = 'Not-Pending'
    AND auto_event.attachment IS NOT NULL
    AND auto_event.sent_date BETWEEN %(start)s AND %(end)s
"""

_MESSAGE_EVENTS = """
SELECT
    auto_event.auto_repair_order_id_c AS roId,
    auto_event_to_recipient_c.auto_eventa735cipient_ida AS recipientId,
    auto_event.sent_date AS sentDate,
    auto_event.generated_from AS generatedFrom,
    auto_event.type AS type,
    auto_event.attachment AS attachment
FROM
    auto_event
    INNER JOIN auto_event_to_recipient_c ON auto_event.id = auto_event_to_recipient_c.auto_eventfa83o_event_idb
        AND auto_event_to_recipient_c.deleted = 0
WHERE
    auto_event.deleted = 0
    AND auto_event.auto_repair_order_id_c IS NOT NULL
    AND auto_event.body_type = 'Text'
    AND auto_event.sent_date BETWEEN %(start)s AND %(end)s
    AND (
        (auto_event.generated_from = 'Comunicator' AND auto_event.type = 'Not-Pending')
        OR (auto_event.generated_from = 'Reply' AND auto_event.type = 'Reply')
    )
"""

# ordered by (group, sentDate), as the response-time pairing requires
MESSAGE_EVENTS = {
    "repair_order": _MESSAGE_EVENTS + "ORDER BY roId, sentDate\n",
    "recipient": _MESSAGE_EVENTS + "ORDER BY recipientId, sentDate\n",
}

VIDEO_RO_MESSAGES = """
SELECT
    auto_repair_order.id AS roId,
    auto_repair_order.name AS roNumber,
    auto_repair_order.service_closed_date AS serviceClosedDate,
    COUNT(DISTINCT IF(auto_event.attachment IS NOT NULL, auto_event.id, NULL)) AS videosSent,
    COUNT(DISTINCT auto_event.id) AS textsSent
FROM
    auto_repair_order
    INNER JOIN auto_event ON auto_event.auto_repair_order_id_c = auto_repair_order.id
        AND auto_event.deleted = 0
WHERE
    auto_repair_order.deleted = 0
    AND auto_event.body_type = 'Text'
    AND auto_event.generated_from = 'Comunicator'
    AND auto_event.type = 'Not-Pending'
    AND auto_event.sent_date BETWEEN %(start)s AND %(end)s
GROUP BY auto_repair_order.id
ORDER BY auto_repair_order.name
"""

VIDEO_RO_REPLIES = """
SELECT
    auto_event.auto_repair_order_id_c AS roId,
    COUNT(DISTINCT auto_event.id) AS repliesReceived
FROM auto_event
WHERE auto_event.deleted = 0
    AND auto_event.auto_repair_order_id_c IS NOT NULL
    AND auto_event.generated_from = 'Reply'
    AND auto_event.type = 'Reply'
    AND auto_event.sent_date BETWEEN %(start)s AND %(end)s
GROUP BY auto_event.auto_repair_order_id_c
"""
