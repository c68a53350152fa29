import io
import os
import sys
import zipfile

import pytest

# Add the project root to sys.path so that atpackview is importable
# This is needed because of the flat layout structure
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


ATMEGA328P_ATDF = """<?xml version="1.0" encoding="UTF-8"?>
<avr-tools-device-file xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
                       xsi:noNamespaceSchemaLocation="../../schema/avr_tools_device_file.xsd"
                       schema-version="4.0">
  <variants>
    <variant ordercode="ATmega328P-PU" package="PDIP" pinout="PDIP" speedmax="20000000"
             tempmin="-40" tempmax="85" vccmin="1.8" vccmax="5.5"/>
    <variant ordercode="ATmega328P-AU" package="TQFP8" speedmax="20000000"
             tempmin="-40" tempmax="85" vccmin="1.8" vccmax="5.5"/>
    <variant ordercode="ATmega328P-MMH" package="VQFN28" speedmax="20000000"
             tempmin="-40" tempmax="105" vccmin="1.8" vccmax="5.5"/>
  </variants>
  <devices>
    <device name="ATmega328P" architecture="AVR8" family="megaAVR">
      <address-spaces>
        <address-space endianness="little" name="prog" id="prog" start="0x0000" size="0x8000">
          <memory-segment start="0x0000" size="0x8000" type="flash" rw="RW" exec="1" name="FLASH" pagesize="0x80"/>
        </address-space>
        <address-space endianness="little" name="data" id="data" start="0x0000" size="0x0900">
          <memory-segment external="false" type="regs" size="0x0020" start="0x0000" name="REGISTERS"/>
          <memory-segment name="MAPPED_IO" start="0x0020" size="0x00e0" type="io" external="false"/>
          <memory-segment name="IRAM" start="0x0100" size="0x0800" type="ram" external="false"/>
        </address-space>
        <address-space endianness="little" name="eeprom" id="eeprom" start="0x0000" size="0x0400">
          <memory-segment start="0x0000" size="0x0400" type="eeprom" rw="RW" exec="0" name="EEPROM" pagesize="0x04"/>
        </address-space>
        <address-space endianness="little" name="fuses" id="fuses" start="0" size="0x0003">
          <memory-segment start="0" size="0x0003" type="fuses" rw="RW" exec="0" name="FUSES" pagesize="0x01"/>
        </address-space>
        <address-space endianness="little" name="lockbits" id="lockbits" start="0" size="0x0001">
          <memory-segment start="0" size="0x0001" type="lockbits" rw="RW" exec="0" name="LOCKBITS" pagesize="0x01"/>
        </address-space>
        <address-space endianness="little" name="signatures" id="signatures" start="0" size="3">
          <memory-segment start="0" size="3" type="signatures" rw="R" exec="0" name="SIGNATURES"/>
        </address-space>
      </address-spaces>
      <peripherals>
        <module name="TC0">
          <instance name="TC0" caption="Timer/Counter, 8-bit">
            <register-group name="TC0" name-in-module="TC0" offset="0x00" address-space="data"/>
            <signals>
              <signal group="OC0A" function="default" pad="PD6"/>
              <signal group="OC0B" function="default" pad="PD5"/>
            </signals>
          </instance>
        </module>
        <module name="TC1">
          <instance name="TC1" caption="Timer/Counter, 16-bit">
            <register-group name="TC1" name-in-module="TC1" offset="0x00" address-space="data"/>
            <signals>
              <signal group="OC1A" function="default" pad="PB1"/>
            </signals>
          </instance>
        </module>
        <module name="TC2">
          <instance name="TC2" caption="Timer/Counter2 with PWM and Asynchronous Operation">
            <register-group name="TC2" name-in-module="TC2" offset="0x00" address-space="data"/>
          </instance>
        </module>
        <module name="SPI">
          <instance name="SPI" caption="Serial Peripheral Interface">
            <signals>
              <signal group="MOSI" function="default" pad="PB3"/>
              <signal group="MISO" function="default" pad="PB4"/>
              <signal group="SCK" function="default" pad="PB5"/>
            </signals>
          </instance>
        </module>
        <module name="ADC">
          <instance name="ADC" caption="Analog-to-Digital Converter">
            <register-group name="ADC" name-in-module="ADC" offset="0x00" address-space="data"/>
            <signals>
              <signal group="ADC" function="default" index="0" pad="PC0"/>
              <signal group="ADC" function="default" index="1" pad="PC1"/>
            </signals>
          </instance>
        </module>
        <module name="PORT">
          <instance name="PORTB" caption="I/O Port">
            <register-group name="PORTB" name-in-module="PORT" offset="0x23" address-space="data"/>
          </instance>
          <instance name="PORTC" caption="I/O Port">
            <register-group name="PORTC" name-in-module="PORT" offset="0x26" address-space="data"/>
          </instance>
        </module>
        <module name="CPU">
          <instance name="CPU" caption="CPU Registers">
            <register-group name="CPU" name-in-module="CPU" offset="0x00" address-space="data"/>
          </instance>
        </module>
        <module name="FUSE">
          <instance name="FUSE" caption="Fuses">
            <register-group name="FUSE" name-in-module="FUSE" offset="0" address-space="fuses"/>
          </instance>
        </module>
        <module name="LOCKBIT">
          <instance name="LOCKBIT" caption="Lockbits">
            <register-group name="LOCKBIT" name-in-module="LOCKBIT" offset="0" address-space="lockbits"/>
          </instance>
        </module>
      </peripherals>
      <interrupts>
        <interrupt index="0" name="RESET" caption="External Pin, Power-on Reset, Brown-out Reset and Watchdog Reset"/>
        <interrupt index="2" name="INT1" caption="External Interrupt Request 1"/>
        <interrupt index="1" name="INT0" caption="External Interrupt Request 0"/>
        <interrupt index="2" name="INT1_ALIAS" caption="Second definition of vector 2"/>
      </interrupts>
      <interfaces>
        <interface name="ISP" type="isp"/>
        <interface name="debugWIRE" type="dw"/>
      </interfaces>
      <property-groups>
        <property-group name="SIGNATURES">
          <property name="JTAGID" value="0x0950F03F"/>
          <property name="SIGNATURE2" value="0x0F"/>
          <property name="SIGNATURE0" value="0x1E"/>
          <property name="SIGNATURE1" value="0x95"/>
        </property-group>
        <property-group name="ELECTRICAL_CHARACTERISTICS">
          <property name="ICC_ACTIVE" caption="Active supply current" typ="0.2" max="0.5" unit="mA"/>
          <property name="VIH" group="DC" min="0.6" unit="VCC"/>
          <property name="T_RESET" value="2.5"/>
        </property-group>
      </property-groups>
    </device>
  </devices>
  <modules>
    <module caption="Timer/Counter, 8-bit" name="TC0">
      <register-group caption="Timer/Counter, 8-bit" name="TC0">
        <register caption="Timer/Counter0 Control Register A" name="TCCR0A" offset="0x44" size="1" mask="0xF3">
          <bitfield caption="Force Output Compare A" mask="0xC0" name="COM0A" values="COMPARE_OUTPUT_MODE"/>
          <bitfield caption="Compare Output Mode, Fast PWm" mask="0x30" name="COM0B"/>
          <bitfield caption="Waveform Generation Mode" mask="0x03" name="WGM0"/>
        </register>
        <register caption="Timer/Counter0 Control Register B" name="TCCR0B" offset="0x45" size="1" mask="0xCF">
          <bitfield caption="Waveform Generation Mode" mask="0x08" name="WGM02"/>
          <bitfield caption="Clock Select" mask="0x07" name="CS0" values="CLK_SEL_3BIT_EXT"/>
        </register>
        <register caption="Timer/Counter0" name="TCNT0" offset="0x46" size="1" mask="0xFF"/>
        <register caption="Timer/Counter0 Output Compare Register" name="OCR0A" offset="0x47" size="1" mask="0xFF"/>
        <register caption="Timer/Counter0 Output Compare Register" name="OCR0B" offset="0x48" size="1" mask="0xFF"/>
      </register-group>
      <value-group caption="" name="CLK_SEL_3BIT_EXT">
        <value caption="No Clock Source (Stopped)" name="VAL_0x00" value="0x00"/>
        <value caption="Running, No Prescaling" name="VAL_0x01" value="0x01"/>
        <value caption="Running, CLK/8" name="VAL_0x02" value="0x02"/>
        <value caption="Running, CLK/64" name="VAL_0x03" value="0x03"/>
        <value caption="Running, CLK/256" name="VAL_0x04" value="0x04"/>
        <value caption="Running, CLK/1024" name="VAL_0x05" value="0x05"/>
        <value caption="Running, ExtClk Tx Falling Edge" name="VAL_0x06" value="0x06"/>
        <value caption="Running, ExtClk Tx Rising Edge" name="VAL_0x07" value="0x07"/>
      </value-group>
      <value-group caption="" name="COMPARE_OUTPUT_MODE">
        <value caption="Normal port operation, OC0A disconnected" name="VAL_0x00" value="0x00"/>
        <value caption="Toggle OC0A on Compare Match" name="VAL_0x01" value="0x01"/>
        <value caption="Clear OC0A on Compare Match" name="VAL_0x02" value="0x02"/>
        <value caption="Set OC0A on Compare Match" name="VAL_0x03" value="0x03"/>
      </value-group>
    </module>
    <module caption="Timer/Counter, 16-bit" name="TC1">
      <register-group caption="Timer/Counter, 16-bit" name="TC1">
        <register caption="Timer/Counter1 Control Register A" name="TCCR1A" offset="0x80" size="1" mask="0xF3">
          <bitfield caption="Waveform Generation Mode" mask="0x03" name="WGM1" values="TC1_WGM"/>
        </register>
        <register caption="Timer/Counter1 Control Register B" name="TCCR1B" offset="0x81" size="1" mask="0xDF">
          <bitfield caption="Prescaler source of Timer/Counter 1" mask="0x07" name="CS1" values="CLK_SEL_3BIT_EXT"/>
        </register>
        <register caption="Timer/Counter1 Bytes" name="TCNT1" offset="0x84" size="2" mask="0xFFFF"/>
        <register caption="Timer/Counter1 Input Capture Register Bytes" name="ICR1" offset="0x86" size="2" mask="0xFFFF"/>
        <register caption="Timer/Counter1 Output Compare Register Bytes" name="OCR1A" offset="0x88" size="2" mask="0xFFFF"/>
      </register-group>
      <value-group caption="" name="TC1_WGM">
        <value caption="Normal" name="NORMAL" value="0x00"/>
        <value caption="PWM, Phase Correct, 8-bit" name="PWM_8BIT" value="0x01"/>
      </value-group>
    </module>
    <module caption="Timer/Counter, 8-bit Async" name="TC2">
      <register-group caption="Timer/Counter, 8-bit Async" name="TC2">
        <register caption="Timer/Counter2 Control Register A" name="TCCR2A" offset="0xB0" size="1" mask="0xF3"/>
        <register caption="Timer/Counter2 Control Register B" name="TCCR2B" offset="0xB1" size="1" mask="0xCF">
          <bitfield caption="Clock Select bits" mask="0x07" name="CS2" values="CLK_SEL_3BIT"/>
        </register>
        <register caption="Timer/Counter2" name="TCNT2" offset="0xB2" size="1" mask="0xFF"/>
        <register caption="Timer/Counter2 Output Compare Register A" name="OCR2A" offset="0xB3" size="1" mask="0xFF"/>
        <register caption="Asynchronous Status Register" name="ASSR" offset="0xB6" size="1" mask="0x7F">
          <bitfield caption="Asynchronous Timer/Counter2" mask="0x20" name="AS2"/>
        </register>
      </register-group>
    </module>
    <module caption="Analog-to-Digital Converter" name="ADC">
      <register-group caption="Analog-to-Digital Converter" name="ADC">
        <register caption="The ADC multiplexer Selection Register" name="ADMUX" offset="0x7C" size="1" mask="0xEF">
          <bitfield caption="Reference Selection Bits" mask="0xC0" name="REFS" values="ANALOG_ADC_V_REF3"/>
          <bitfield caption="Analog Channel Selection Bits" mask="0x0F" name="MUX" values="ADC_MUX_SINGLE"/>
        </register>
        <register caption="The ADC Control and Status register A" name="ADCSRA" offset="0x7A" size="1" mask="0xFF">
          <bitfield caption="ADC  Prescaler Select Bits" mask="0x07" name="ADPS" values="ANALOG_ADC_PRESCALER"/>
        </register>
      </register-group>
      <value-group caption="" name="ANALOG_ADC_V_REF3">
        <value caption="AREF, Internal Vref turned off" name="VAL_0x00" value="0x00"/>
        <value caption="AVCC with external capacitor at AREF pin" name="VAL_0x01" value="0x01"/>
        <value caption="Internal 1.1V Voltage Reference with external capacitor at AREF pin" name="VAL_0x03" value="0x03"/>
      </value-group>
      <value-group caption="" name="ANALOG_ADC_PRESCALER">
        <value caption="128" name="VAL_0x07" value="0x07"/>
        <value caption="32" name="VAL_0x05" value="0x05"/>
        <value caption="64" name="VAL_0x06" value="0x06"/>
      </value-group>
    </module>
    <module caption="I/O Port" name="PORT">
      <register-group caption="I/O Port" name="PORT">
        <register caption="Port Input Pins" name="PIN" offset="0x00" size="1" mask="0xFF" ocd-rw="R"/>
        <register caption="Data Direction Register" name="DDR" offset="0x01" size="1" mask="0xFF"/>
        <register caption="Data Register" name="PORT" offset="0x02" size="1" mask="0xFF"/>
      </register-group>
    </module>
    <module caption="CPU Registers" name="CPU">
      <register-group caption="CPU Registers" name="CPU">
        <register caption="Clock Prescale Register" name="CLKPR" offset="0x61" size="1" mask="0x8F">
          <bitfield caption="Clock Prescaler Change Enable" mask="0x80" name="CLKPCE"/>
          <bitfield caption="Clock Prescaler Select Bits" mask="0x0F" name="CLKPS" values="CPU_CLK_PRESCALE_4_BITS_SMALL"/>
        </register>
        <register caption="Oscillator Calibration Value" name="OSCCAL" offset="0x66" size="1" mask="0xFF">
          <bitfield caption="Oscillator Calibration " mask="0xFF" name="OSCCAL" values="NO_SUCH_GROUP"/>
        </register>
      </register-group>
      <value-group caption="" name="CPU_CLK_PRESCALE_4_BITS_SMALL">
        <value caption="1" name="VAL_0x00" value="0x00"/>
        <value caption="2" name="VAL_0x01" value="0x01"/>
        <value caption="4" name="VAL_0x02" value="0x02"/>
        <value caption="8" name="VAL_0x03" value="0x03"/>
      </value-group>
    </module>
    <module caption="Fuses" name="FUSE">
      <register-group caption="Fuses" name="FUSE">
        <register caption="" name="EXTENDED" offset="0x02" size="1" initval="0xFF">
          <bitfield caption="Brown-out Detector trigger level" mask="0x07" name="BODLEVEL" values="ENUM_BODLEVEL"/>
        </register>
        <register caption="" name="HIGH" offset="0x01" size="1" initval="0xD9">
          <bitfield caption="Reset Disabled (Enable PC6 as i/o pin)" mask="0x80" name="RSTDISBL"/>
          <bitfield caption="Debug Wire enable" mask="0x40" name="DWEN"/>
          <bitfield caption="Serial program downloading (SPI) enabled" mask="0x20" name="SPIEN"/>
          <bitfield caption="Boot Reset vector Enabled" mask="0x01" name="BOOTRST"/>
        </register>
        <register caption="" name="LOW" offset="0x00" size="1" initval="0x62">
          <bitfield caption="Divide clock by 8 internally" mask="0x80" name="CKDIV8"/>
          <bitfield caption="Clock output on PORTB0" mask="0x40" name="CKOUT"/>
          <bitfield caption="Select Clock Source" mask="0x3F" name="SUT_CKSEL" values="ENUM_SUT_CKSEL"/>
        </register>
      </register-group>
      <value-group caption="" name="ENUM_BODLEVEL">
        <value caption="Brown-out detection at VCC=4.3 V" name="4V3" value="0x04"/>
        <value caption="Brown-out detection at VCC=2.7 V" name="2V7" value="0x05"/>
        <value caption="Brown-out detection disabled" name="DISABLED" value="0x07"/>
      </value-group>
      <value-group caption="" name="ENUM_SUT_CKSEL">
        <value caption="Ext. Clock; Start-up time PWRDWN/RESET: 6 CK/14 CK + 0 ms" name="EXTCLK_6CK_14CK_0MS" value="0x00"/>
        <value caption="Int. RC Osc. 8 MHz; Start-up time PWRDWN/RESET: 6 CK/14 CK + 65 ms" name="INTRCOSC_8MHZ_6CK_14CK_65MS" value="0x22"/>
        <value caption="Ext. Crystal Osc. 8.0-    MHz; Start-up time PWRDWN/RESET: 16K CK/14 CK + 65 ms" name="EXTXOSC_8MHZ_XX_16KCK_14CK_65MS" value="0x3F"/>
      </value-group>
    </module>
    <module caption="Lockbits" name="LOCKBIT">
      <register-group caption="Lockbits" name="LOCKBIT">
        <register caption="" name="LOCKBIT" offset="0x00" size="1" initval="0xFF">
          <bitfield caption="Memory Lock" mask="0x03" name="LB" values="ENUM_LB"/>
          <bitfield caption="Boot Loader Protection Mode" mask="0x0C" name="BLB0" values="ENUM_BLB"/>
        </register>
      </register-group>
      <value-group caption="" name="ENUM_LB">
        <value caption="Further programming and verification disabled" name="PROG_VER_DISABLED" value="0x00"/>
        <value caption="Further programming disabled" name="PROG_DISABLED" value="0x02"/>
        <value caption="No memory lock features enabled" name="NO_LOCK" value="0x03"/>
      </value-group>
    </module>
  </modules>
  <pinouts>
    <pinout name="PDIP" caption="PDIP">
      <pin position="1" pad="RESET"/>
      <pin position="2" pad="PD5"/>
      <pin position="3" pad="PD6"/>
      <pin position="4" pad="PB1"/>
      <pin position="5" pad="PB3"/>
      <pin position="6" pad="PC0"/>
      <pin position="8" pad="PB5"/>
      <pin position="7" pad="PB4"/>
    </pinout>
    <pinout name="EMPTY" caption="Placeholder"/>
  </pinouts>
</avr-tools-device-file>
"""


def make_pdsc(name="ATmega_DFP", devices=("ATmega328P",), version="2.0.401", family="ATmega"):
    """Package descriptor listing ``devices``, each with an ``atdf/<name>.atdf`` reference."""
    device_xml = "".join(
        f"""
      <device Dname="{device}">
        <processor Dcore="AVR8"/>
        <memory id="IROM1" name="FLASH" start="0x00000000" size="0x8000" type="flash"/>
        <environment name="atmel">
          <at:extension>
            <at:atdf name="atdf/{device}.atdf"/>
          </at:extension>
        </environment>
      </device>"""
        for device in devices
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package schemaVersion="1.3" xmlns:xs="http://www.w3.org/2001/XMLSchema-instance"
         xmlns:at="http://www.atmel.com/schemas/pack-device-atmel-extension"
         xs:noNamespaceSchemaLocation="PACK.xsd">
  <vendor>Atmel</vendor>
  <name>{name}</name>
  <description>Microchip ATmega Series Device Support</description>
  <url>http://packs.download.atmel.com/</url>
  <releases>
    <release version="{version}">Latest release</release>
    <release version="1.0.0">Initial release</release>
  </releases>
  <devices>
    <family Dfamily="{family}" Dvendor="Microchip:3">
      <book name="doc/ATmega328P.pdf" title="ATmega328P Data Sheet"/>
      <book name="https://www.microchip.com/ATmega328P" title="Device page for ATmega328P"/>
      {device_xml}
    </family>
  </devices>
</package>
"""


PIC16F877A_PIC = """<?xml version="1.0" encoding="UTF-8"?>
<edc:PIC xmlns:edc="http://crownking/edc" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
         xsi:schemaLocation="http://crownking/edc ../../edc.xsd"
         edc:name="PIC16F877A" edc:arch="16xxxx" edc:family="16xxxx">
  <edc:ProgramSpace>
    <edc:CodeSector edc:beginaddr="0x0" edc:endaddr="0x2000" edc:regionid="program"/>
    <edc:DeviceIDSector edc:beginaddr="0x2006" edc:endaddr="0x2007" edc:mask="0x3fe0" edc:value="0xe20"/>
    <edc:ConfigFuseSector edc:beginaddr="0x2007" edc:endaddr="0x2008">
      <edc:DCRDef edc:_addr="0x2007" edc:cname="CONFIG" edc:default="0x3f7b" edc:impl="0x3fff" edc:nzwidth="0xe">
        <edc:DCRModeList>
          <edc:DCRMode edc:id="DS.0">
            <edc:DCRFieldDef edc:cname="FOSC" edc:desc="Oscillator Selection bits" edc:mask="0x3" edc:nzwidth="0x2">
              <edc:DCRFieldSemantic edc:cname="EXTRC" edc:desc="RC oscillator" edc:when="(FOSC &amp; 0x3) == 0x3"/>
              <edc:DCRFieldSemantic edc:cname="HS" edc:desc="HS oscillator" edc:when="(FOSC &amp; 0x3) == 0x2"/>
              <edc:DCRFieldSemantic edc:cname="XT" edc:desc="XT oscillator" edc:when="(FOSC &amp; 0x3) == 0x1"/>
              <edc:DCRFieldSemantic edc:cname="LP" edc:desc="LP oscillator" edc:when="(FOSC &amp; 0x3) == 0x0"/>
            </edc:DCRFieldDef>
            <edc:DCRFieldDef edc:cname="WDTE" edc:desc="Watchdog Timer Enable bit" edc:mask="0x1" edc:nzwidth="0x1">
              <edc:DCRFieldSemantic edc:cname="ON" edc:desc="WDT enabled" edc:when="(WDTE &amp; 0x1) == 0x1"/>
              <edc:DCRFieldSemantic edc:cname="OFF" edc:desc="WDT disabled" edc:when="(WDTE &amp; 0x1) == 0x0"/>
            </edc:DCRFieldDef>
            <edc:AdjustPoint edc:offset="0x4"/>
            <edc:DCRFieldDef edc:cname="LVP" edc:desc="Low-Voltage ICSP Programming Enable bit" edc:mask="0x1" edc:nzwidth="0x1"/>
            <edc:DCRFieldDef edc:cname="" edc:mask="0x0" edc:nzwidth="0x1"/>
            <edc:DCRFieldDef edc:cname="CP" edc:desc="Flash Program Memory Code Protection bit" edc:mask="0x1" edc:nzwidth="0x1">
              <edc:DCRFieldSemantic edc:cname="OFF" edc:desc="Code protection off" edc:when="(CP &amp; 0x1) == 0x1"/>
              <edc:DCRFieldSemantic edc:cname="ON" edc:desc="All program memory code-protected" edc:when="(CP &amp; 0x1) == 0x0"/>
            </edc:DCRFieldDef>
          </edc:DCRMode>
        </edc:DCRModeList>
      </edc:DCRDef>
    </edc:ConfigFuseSector>
    <edc:EEDataSector edc:beginaddr="0x2100" edc:endaddr="0x2200"/>
  </edc:ProgramSpace>
  <edc:DataSpace edc:endaddr="0x200"/>
  <edc:PinList>
    <edc:Pin><edc:VirtualPin edc:name="MCLR"/><edc:VirtualPin edc:name="VPP"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="RA0"/><edc:VirtualPin edc:name="AN0"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="RA1"/><edc:VirtualPin edc:name="AN1"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="RC6"/><edc:VirtualPin edc:name="TX"/><edc:VirtualPin edc:name="CK"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="VSS"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="RB6"/><edc:VirtualPin edc:name="PGC"/></edc:Pin>
    <edc:Pin><edc:VirtualPin edc:name="RB7"/><edc:VirtualPin edc:name="PGD"/></edc:Pin>
  </edc:PinList>
</edc:PIC>
"""


def make_pic_pdsc(name="PIC16Fxxx_DFP", devices=("PIC16F877A",), version="1.3.42"):
    """PIC package descriptor; its devices carry no ATDF reference."""
    device_xml = "".join(
        f"""
      <device Dname="{device}">
        <memory id="IROM1" name="PROGRAM" start="0x0" size="0x4000" type="flash"/>
      </device>"""
        for device in devices
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package schemaVersion="1.4" xmlns:xs="http://www.w3.org/2001/XMLSchema-instance"
         xs:noNamespaceSchemaLocation="PACK.xsd">
  <vendor>Microchip</vendor>
  <name>{name}</name>
  <description>Microchip PIC16F Series Device Support</description>
  <releases>
    <release version="{version}">Latest release</release>
  </releases>
  <devices>
    <family Dfamily="PIC16" Dvendor="Microchip:3">
      <processor Dcore="PIC"/>
      {device_xml}
    </family>
  </devices>
</package>
"""


def build_zip(files):
    """ZIP bytes holding ``files`` (path -> str or bytes)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for path, content in files.items():
            archive.writestr(path, content.encode("utf-8") if isinstance(content, str) else content)
    return buffer.getvalue()


@pytest.fixture
def atdf_text():
    return ATMEGA328P_ATDF


@pytest.fixture
def pdsc_text():
    return make_pdsc()


@pytest.fixture
def pack_bytes():
    """Single-device pack for ATmega328P."""
    return build_zip(
        {
            "Atmel.ATmega_DFP.pdsc": make_pdsc(),
            "atdf/ATmega328P.atdf": ATMEGA328P_ATDF,
        }
    )


@pytest.fixture
def make_pack():
    """Factory building pack bytes from a descriptor and extra files."""

    def _make(pdsc, files=None):
        contents = {"Atmel.test.pdsc": pdsc}
        contents.update(files or {})
        return build_zip(contents)

    return _make


@pytest.fixture
def pdsc_factory():
    return make_pdsc


@pytest.fixture
def zip_factory():
    return build_zip


@pytest.fixture
def pic_pdsc_factory():
    return make_pic_pdsc


@pytest.fixture
def pic_pack_bytes():
    """Single-device PIC pack for PIC16F877A."""
    return build_zip(
        {
            "Microchip.PIC16Fxxx_DFP.pdsc": make_pic_pdsc(),
            "edc/PIC16F877A.PIC": PIC16F877A_PIC,
        }
    )
